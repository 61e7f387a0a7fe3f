"""
Unit tests for Firebase ID token validation.

Signing certificates are served by a fake google-auth transport; tokens
are minted with the matching test key.
"""

import time

import jwt
import pytest

from core.config import settings
from core.security import (
    SecurityError,
    TokenExpiredError,
    TokenInvalidError,
    firebase_issuer,
    verify_firebase_token,
)
from tests.factories import FakeGoogleRequest, FakeGoogleResponse


def _verify(token, request):
    return verify_firebase_token(token, request, settings.firebase.project_id)


class TestVerifyFirebaseToken:

    def test_valid_token(self, make_id_token, certificate_request):
        principal = _verify(make_id_token(), certificate_request)

        assert principal.uid == "admin-uid-001"
        assert principal.email == "admin@lawbot.ph"
        assert principal.claims["aud"] == settings.firebase.project_id
        assert "securetoken@system.gserviceaccount.com" in certificate_request.requests[0]["url"]

    def test_expired_token(self, make_id_token, certificate_request):
        now = int(time.time())
        token = make_id_token(iat=now - 7200, exp=now - 3600)

        with pytest.raises(TokenExpiredError):
            _verify(token, certificate_request)

    def test_wrong_audience(self, make_id_token, certificate_request):
        with pytest.raises(TokenInvalidError):
            _verify(make_id_token(aud="some-other-project"), certificate_request)

    def test_wrong_issuer(self, make_id_token, certificate_request):
        with pytest.raises(TokenInvalidError, match="issuer"):
            _verify(make_id_token(iss=firebase_issuer("other")), certificate_request)

    def test_unknown_key_id(self, make_id_token, certificate_request):
        with pytest.raises(TokenInvalidError):
            _verify(make_id_token(kid="rotated-away"), certificate_request)

    def test_missing_subject(self, make_id_token, certificate_request):
        with pytest.raises(TokenInvalidError, match="subject"):
            _verify(make_id_token(sub=None), certificate_request)

    def test_empty_subject(self, make_id_token, certificate_request):
        with pytest.raises(TokenInvalidError, match="subject"):
            _verify(make_id_token(sub=""), certificate_request)

    def test_hmac_token_rejected(self, certificate_request):
        now = int(time.time())
        token = jwt.encode(
            {
                "iss": firebase_issuer(settings.firebase.project_id),
                "aud": settings.firebase.project_id,
                "sub": "admin-uid-001",
                "iat": now,
                "exp": now + 60,
            },
            "a-shared-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
            headers={"kid": "test-key-1"},
        )

        with pytest.raises(TokenInvalidError):
            _verify(token, certificate_request)

    def test_malformed_token(self, certificate_request):
        with pytest.raises(TokenInvalidError):
            _verify("not-a-jwt", certificate_request)

    def test_certificate_fetch_failure(self, make_id_token):
        request = FakeGoogleRequest(FakeGoogleResponse(503, "unavailable"))

        with pytest.raises(TokenInvalidError, match="certificates"):
            _verify(make_id_token(), request)

    def test_expired_is_a_security_error(self):
        assert issubclass(TokenExpiredError, SecurityError)
        assert issubclass(TokenInvalidError, SecurityError)
