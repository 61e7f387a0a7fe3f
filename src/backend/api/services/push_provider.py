"""
Push Provider client (Firebase Cloud Messaging HTTP v1).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import httpx

from api.services.google_auth import (
    FIREBASE_MESSAGING_SCOPE,
    GoogleAuthError,
    GoogleHTTPClient,
    ServiceAccountTokenSource,
    token_source,
)
from core.config import settings

logger = logging.getLogger(__name__)

# FCM v1 error statuses
UNREGISTERED = "UNREGISTERED"
NOT_FOUND = "NOT_FOUND"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
UNAVAILABLE = "UNAVAILABLE"
INTERNAL = "INTERNAL"
QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

_INVALID_TOKEN_CODES = {UNREGISTERED, NOT_FOUND}
_RETRYABLE_CODES = {UNAVAILABLE, INTERNAL, QUOTA_EXCEEDED, "RESOURCE_EXHAUSTED"}


@dataclass
class PushPayload:
    """Notification content for one device."""

    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    badge: int = 1

    def to_message(self, device_token: str) -> Dict[str, Any]:
        """Build the FCM v1 message body. Data values must be strings."""
        return {
            "message": {
                "token": device_token,
                "notification": {"title": self.title, "body": self.body},
                "data": {key: str(value) for key, value in self.data.items() if value is not None},
                "android": {
                    "priority": "high",
                    "notification": {
                        "channel_id": settings.push.android_channel_id,
                        "sound": "default",
                    },
                },
                "apns": {
                    "payload": {"aps": {"sound": "default", "badge": self.badge}},
                },
            }
        }


class PushProviderError(Exception):
    """Raised when a push could not be delivered."""

    def __init__(self, code: str, message: str, retryable: bool = False):
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = retryable

    @property
    def is_invalid_token(self) -> bool:
        return self.code in _INVALID_TOKEN_CODES


class PushProvider(Protocol):
    """Contract the push dispatcher depends on."""

    async def send(self, device_token: str, payload: PushPayload) -> str: ...

    async def test_connection(self) -> bool: ...


def _error_from_response(response: httpx.Response) -> PushProviderError:
    code = f"HTTP_{response.status_code}"
    message = response.text
    try:
        error = response.json().get("error", {})
        code = error.get("status") or code
        message = error.get("message") or message
        # errorCode in details is more specific than the status (e.g. UNREGISTERED)
        for detail in error.get("details", []):
            if detail.get("errorCode"):
                code = detail["errorCode"]
                break
    except (ValueError, AttributeError):
        pass

    retryable = code in _RETRYABLE_CODES or response.status_code >= 500
    if code in _INVALID_TOKEN_CODES or code == INVALID_ARGUMENT:
        retryable = False
    return PushProviderError(code, message, retryable=retryable)


class FCMPushProvider:
    """
    FCM HTTP v1 client.

    Args:
        client: HTTP client (defaults to the shared GoogleHTTPClient)
        tokens: Service-account access token source
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        tokens: Optional[ServiceAccountTokenSource] = None,
    ):
        self._client = client
        self._tokens = tokens or token_source

    async def _http(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await GoogleHTTPClient.get_client()

    async def _access_token(self) -> str:
        try:
            return await self._tokens.get_access_token(FIREBASE_MESSAGING_SCOPE)
        except GoogleAuthError as e:
            raise PushProviderError("CREDENTIALS", str(e), retryable=False) from e

    async def send(self, device_token: str, payload: PushPayload) -> str:
        """
        Send one message.

        Returns:
            The provider message name (projects/<p>/messages/<id>)

        Raises:
            PushProviderError: On any delivery failure
        """
        access_token = await self._access_token()
        url = f"{settings.firebase.fcm_url}/projects/{settings.firebase.project_id}/messages:send"
        client = await self._http()
        try:
            response = await client.post(
                url,
                json=payload.to_message(device_token),
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise PushProviderError("NETWORK", f"Push provider unreachable: {str(e)}", retryable=True) from e

        if response.status_code == 401:
            self._tokens.invalidate(FIREBASE_MESSAGING_SCOPE)

        if response.status_code >= 400:
            raise _error_from_response(response)

        try:
            name = response.json().get("name", "")
        except (ValueError, AttributeError) as e:
            raise PushProviderError(
                "INVALID_RESPONSE", f"Unreadable push provider response: {response.text[:200]}"
            ) from e
        logger.debug(f"Push accepted by provider: {name}")
        return name

    async def test_connection(self) -> bool:
        """Prove the service account can mint a messaging token."""
        try:
            await self._access_token()
        except PushProviderError as e:
            logger.warning(f"Push provider connection test failed: {e.message}")
            return False
        return True
