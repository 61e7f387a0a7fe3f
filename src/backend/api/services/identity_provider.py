"""
Identity Provider client (Firebase Authentication).

verify_token validates Firebase ID tokens against Google's published
signing certificates through google-auth. delete_identity removes an
account through the Identity Toolkit REST API using service-account
credentials.
"""

import asyncio
import logging
from typing import Optional, Protocol

import httpx
from google.auth import transport

from api.services.google_auth import (
    IDENTITY_SCOPE,
    GoogleAuthError,
    GoogleHTTPClient,
    ServiceAccountTokenSource,
    get_google_request,
    token_source,
)
from core.config import settings
from core.security import Principal, TokenInvalidError, verify_firebase_token

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Raised when the identity provider rejects or fails an administrative call."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class IdentityProvider(Protocol):
    """Contract the coordinator and endpoints depend on."""

    async def verify_token(self, token: str) -> Principal: ...

    async def delete_identity(self, uid: str) -> None: ...


# Identity Toolkit error messages mapped to Firebase Admin style codes
_ERROR_CODES = {
    "USER_NOT_FOUND": "auth/user-not-found",
    "INVALID_ID_TOKEN": "auth/invalid-id-token",
    "INSUFFICIENT_PERMISSION": "auth/insufficient-permission",
    "PROJECT_NOT_FOUND": "auth/project-not-found",
}


def _provider_error_code(response: httpx.Response) -> str:
    try:
        message = response.json().get("error", {}).get("message", "")
    except (ValueError, AttributeError):
        message = ""
    reason = message.split(":", 1)[0].strip()
    if reason in _ERROR_CODES:
        return _ERROR_CODES[reason]
    if reason:
        return f"auth/{reason.lower().replace('_', '-')}"
    return f"auth/http-{response.status_code}"


class FirebaseIdentityProvider:
    """
    Firebase Authentication client.

    Args:
        client: HTTP client for admin calls (defaults to the shared
            GoogleHTTPClient)
        tokens: Service-account access token source
        request: google-auth transport for certificate fetches (defaults to
            the shared transport)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        tokens: Optional[ServiceAccountTokenSource] = None,
        request: Optional[transport.Request] = None,
    ):
        self._client = client
        self._tokens = tokens or token_source
        self._request = request

    async def _http(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await GoogleHTTPClient.get_client()

    async def verify_token(self, token: str) -> Principal:
        """
        Verify a Firebase ID token.

        Raises:
            TokenExpiredError: If the token has expired
            TokenInvalidError: For any other validation failure
        """
        if not token:
            raise TokenInvalidError("Invalid token: empty credential")

        request = self._request if self._request is not None else get_google_request()
        return await asyncio.to_thread(
            verify_firebase_token, token, request, settings.firebase.project_id
        )

    async def delete_identity(self, uid: str) -> None:
        """
        Delete a Firebase Authentication account.

        Raises:
            IdentityProviderError: If credentials cannot be obtained or the
                API call fails
        """
        try:
            access_token = await self._tokens.get_access_token(IDENTITY_SCOPE)
        except GoogleAuthError as e:
            raise IdentityProviderError(str(e), code="auth/credential-unavailable") from e

        url = (
            f"{settings.firebase.identity_toolkit_url}/projects/"
            f"{settings.firebase.project_id}/accounts:delete"
        )
        client = await self._http()
        try:
            response = await client.post(
                url,
                json={"localId": uid},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise IdentityProviderError(
                f"Identity provider unreachable: {str(e)}", code="auth/network-error"
            ) from e

        if response.status_code == 401:
            self._tokens.invalidate(IDENTITY_SCOPE)

        if response.status_code >= 400:
            code = _provider_error_code(response)
            raise IdentityProviderError(
                f"Failed to delete identity {uid}: HTTP {response.status_code}", code=code
            )

        logger.info(f"Deleted identity {uid}")
