"""
Security utilities for Firebase ID token validation.

Firebase ID tokens are RS256 JWTs signed by Google. google-auth fetches
the securetoken signing certificates and checks the signature, expiry and
audience; this module adds the Firebase issuer and subject checks and
maps failures onto the SecurityError hierarchy.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from google.auth import exceptions as google_exceptions
from google.auth import transport
from google.oauth2 import id_token


class SecurityError(Exception):
    """Base exception for security-related errors."""

    pass


class TokenExpiredError(SecurityError):
    """Raised when a token has expired."""

    pass


class TokenInvalidError(SecurityError):
    """Raised when a token is invalid."""

    pass


@dataclass(frozen=True)
class Principal:
    """Verified caller identity (the token subject)."""

    uid: str
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


def firebase_issuer(project_id: str) -> str:
    return f"https://securetoken.google.com/{project_id}"


def verify_firebase_token(
    token: str,
    request: transport.Request,
    project_id: str,
    clock_skew_in_seconds: int = 0,
) -> Principal:
    """Verify a Firebase ID token.

    Blocking: google-auth fetches the signing certificates through request.
    Call it from a worker thread.

    Args:
        token: Raw JWT from the Authorization header
        request: google-auth transport used to fetch the certificates
        project_id: Expected audience
        clock_skew_in_seconds: Clock skew tolerance

    Returns:
        Principal for the token subject

    Raises:
        TokenExpiredError: If token has expired
        TokenInvalidError: If token is malformed, unsigned by a known key,
            carries the wrong audience/issuer/subject, or the certificates
            cannot be loaded
    """
    try:
        claims = id_token.verify_firebase_token(
            token,
            request,
            audience=project_id,
            clock_skew_in_seconds=clock_skew_in_seconds,
        )
    except google_exceptions.TransportError as e:
        raise TokenInvalidError(f"Unable to load token signing certificates: {str(e)}")
    except ValueError as e:
        if "expired" in str(e).lower():
            raise TokenExpiredError("Token has expired")
        raise TokenInvalidError(f"Invalid token: {str(e)}")
    except google_exceptions.GoogleAuthError as e:
        raise TokenInvalidError(f"Invalid token: {str(e)}")

    if claims.get("iss") != firebase_issuer(project_id):
        raise TokenInvalidError("Invalid token: unexpected issuer")

    uid = claims.get("sub")
    if not uid or not isinstance(uid, str):
        raise TokenInvalidError("Invalid token: empty subject")

    return Principal(uid=uid, email=claims.get("email"), claims=claims)
