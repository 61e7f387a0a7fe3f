"""
FastAPI dependencies.

Collaborators (identity provider, push provider, datastore, broadcast
queue) are provided here so endpoint tests can swap them through
app.dependency_overrides.
"""

import logging
from typing import Optional

from fastapi import Depends, Request, WebSocket
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.broadcast_queue import BroadcastQueue
from api.services.datastore import SqlDatastore
from api.services.identity_provider import FirebaseIdentityProvider, IdentityProvider
from api.services.mutation_coordinator import MutationCoordinator
from api.services.push_dispatcher import PushDispatcher
from api.services.push_provider import FCMPushProvider, PushProvider
from core.database import get_session
from core.exceptions import Unauthorized
from core.security import Principal, SecurityError, TokenExpiredError

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches our own Unauthorized error body
security = HTTPBearer(auto_error=False)

_identity_provider = FirebaseIdentityProvider()
_push_provider = FCMPushProvider()


def get_identity_provider() -> IdentityProvider:
    return _identity_provider


def get_push_provider() -> PushProvider:
    return _push_provider


async def get_datastore(db: AsyncSession = Depends(get_session)) -> SqlDatastore:
    return SqlDatastore(db)


def get_broadcast_queue(request: Request) -> Optional[BroadcastQueue]:
    """Process broadcast queue created by the lifespan (None outside it)."""
    return getattr(request.app.state, "broadcast_queue", None)


def get_websocket_broadcast_queue(websocket: WebSocket) -> Optional[BroadcastQueue]:
    return getattr(websocket.app.state, "broadcast_queue", None)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Raw bearer token, or None when the Authorization header is missing."""
    if credentials is None:
        return None
    return credentials.credentials or None


async def get_current_principal(
    token: Optional[str] = Depends(get_bearer_token),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Principal:
    """
    Verify the caller's Firebase ID token.

    Raises:
        Unauthorized: If the token is missing, invalid or expired
    """
    if not token:
        raise Unauthorized("Authorization header required")
    try:
        return await identity.verify_token(token)
    except TokenExpiredError:
        raise Unauthorized("Token has expired")
    except SecurityError:
        raise Unauthorized("Invalid token")


async def get_optional_principal(
    token: Optional[str] = Depends(get_bearer_token),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Optional[Principal]:
    """
    Verified caller for endpoints that do not require authentication.

    A missing or rejected token yields None; the request proceeds anonymously.
    """
    if not token:
        return None
    try:
        return await identity.verify_token(token)
    except SecurityError as e:
        logger.warning(f"Ignoring rejected bearer token on anonymous endpoint: {e}")
        return None


def get_coordinator(
    identity: IdentityProvider = Depends(get_identity_provider),
    datastore: SqlDatastore = Depends(get_datastore),
    broadcast: Optional[BroadcastQueue] = Depends(get_broadcast_queue),
) -> MutationCoordinator:
    return MutationCoordinator(identity, datastore, broadcast)


def get_push_dispatcher(
    datastore: SqlDatastore = Depends(get_datastore),
    push: PushProvider = Depends(get_push_provider),
) -> PushDispatcher:
    return PushDispatcher(datastore, push)
