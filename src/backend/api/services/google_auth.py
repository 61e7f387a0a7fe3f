"""
Google service-account credentials and HTTP clients.

Identity Toolkit and FCM HTTP v1 both authorize with an OAuth2 access
token minted from the Firebase service account. google-auth builds the
signed JWT-bearer assertion and performs the exchange; credentials are
kept per scope and refreshed only when they are no longer valid.

google-auth transports are blocking, so refreshes run in a worker thread.
"""

import asyncio
import logging
from typing import Dict, Optional

import httpx
from google.auth import exceptions as google_exceptions
from google.auth import transport
from google.auth.transport import requests as google_requests
from google.oauth2 import service_account

from core.config import settings

logger = logging.getLogger(__name__)

IDENTITY_SCOPE = "https://www.googleapis.com/auth/identitytoolkit"
FIREBASE_MESSAGING_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"


class GoogleAuthError(Exception):
    """Raised when an access token cannot be obtained."""

    pass


class GoogleHTTPClient:
    """Shared async HTTP client for Google REST APIs."""

    _client: Optional[httpx.AsyncClient] = None

    @classmethod
    async def get_client(cls) -> httpx.AsyncClient:
        """
        Get or create the async HTTP client.

        Uses connection pooling for efficiency.
        """
        if cls._client is None or cls._client.is_closed:
            cls._client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.firebase.timeout_seconds),
                headers={"Content-Type": "application/json"},
                limits=httpx.Limits(
                    max_connections=50,
                    max_keepalive_connections=10,
                ),
            )
        return cls._client

    @classmethod
    async def close(cls):
        """Close all connections (call during shutdown)."""
        if cls._client is not None and not cls._client.is_closed:
            await cls._client.aclose()
            cls._client = None


_google_request: Optional[transport.Request] = None


def get_google_request() -> transport.Request:
    """Shared google-auth transport (one requests session per process)."""
    global _google_request
    if _google_request is None:
        _google_request = google_requests.Request()
    return _google_request


class ServiceAccountTokenSource:
    """
    Holds one set of service-account credentials per OAuth2 scope.

    Args:
        request: google-auth transport used for the token exchange. When
            omitted the shared transport is used.
    """

    def __init__(self, request: Optional[transport.Request] = None):
        self._request = request
        self._credentials: Dict[str, service_account.Credentials] = {}
        self._lock = asyncio.Lock()

    def _transport(self) -> transport.Request:
        return self._request if self._request is not None else get_google_request()

    def _credentials_for(self, scope: str) -> service_account.Credentials:
        credentials = self._credentials.get(scope)
        if credentials is not None:
            return credentials

        firebase = settings.firebase
        if not firebase.is_configured:
            raise GoogleAuthError("Firebase service account is not configured")
        try:
            credentials = service_account.Credentials.from_service_account_info(
                firebase.service_account_info, scopes=[scope]
            )
        except (ValueError, KeyError) as e:
            raise GoogleAuthError(f"Invalid service account credentials: {str(e)}") from e

        self._credentials[scope] = credentials
        return credentials

    async def get_access_token(self, scope: str) -> str:
        """Return a valid access token for scope, refreshing the credentials if needed."""
        credentials = self._credentials.get(scope)
        if credentials is not None and credentials.valid:
            return credentials.token

        async with self._lock:
            credentials = self._credentials_for(scope)
            if credentials.valid:
                return credentials.token

            try:
                await asyncio.to_thread(credentials.refresh, self._transport())
            except google_exceptions.GoogleAuthError as e:
                raise GoogleAuthError(f"Token exchange failed: {str(e)}") from e
            except (ValueError, TypeError, KeyError) as e:
                # Token endpoint answered with something other than a token response
                logger.exception(f"Malformed token exchange response for scope {scope}")
                raise GoogleAuthError(f"Malformed token exchange response: {str(e)}") from e

            if not credentials.token:
                raise GoogleAuthError("Token exchange response did not include access_token")

            logger.debug(f"Obtained service account token for scope {scope}")
            return credentials.token

    def invalidate(self, scope: Optional[str] = None) -> None:
        """Drop cached credentials, e.g. after a 401 from an API."""
        if scope is None:
            self._credentials.clear()
        else:
            self._credentials.pop(scope, None)


token_source = ServiceAccountTokenSource()
