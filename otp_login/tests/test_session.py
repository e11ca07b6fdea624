"""
Session cookie tests.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import Response

from otp_login.auth.session import ALGORITHM, SessionCodec
from otp_login.models import UserSession


@pytest.fixture
def codec(settings):
    return SessionCodec(settings)


def _encode(settings, **overrides):
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "L1",
        "ext": "u1",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "iss": settings.SESSION_ISSUER,
    }
    payload.update(overrides)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=ALGORITHM)


class TestSessionToken:

    def test_round_trip(self, codec):
        token = codec.create_session(UserSession(user_id="L1", external_auth_id="u1"))

        session = codec.read_session(token)

        assert session == UserSession(user_id="L1", external_auth_id="u1")

    def test_lifetime_is_thirty_days(self, codec, settings):
        token = codec.create_session(UserSession(user_id="L1", external_auth_id="u1"))

        claims = jwt.decode(
            token, settings.SESSION_SECRET, algorithms=[ALGORITHM],
            issuer=settings.SESSION_ISSUER,
        )

        assert claims["exp"] - claims["iat"] == 30 * 24 * 60 * 60

    @pytest.mark.parametrize("token", [None, "", "not-a-token"])
    def test_absent_or_garbage_token(self, codec, token):
        assert codec.read_session(token) is None

    def test_expired_token(self, codec, settings):
        past = datetime.now(timezone.utc) - timedelta(days=31)
        token = _encode(settings, iat=past, exp=past + timedelta(days=30))

        assert codec.read_session(token) is None

    def test_wrong_secret(self, codec, settings):
        token = jwt.encode(
            {"sub": "L1", "ext": "u1", "iat": datetime.now(timezone.utc),
             "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
             "iss": settings.SESSION_ISSUER},
            "some-other-secret-entirely",
            algorithm=ALGORITHM,
        )

        assert codec.read_session(token) is None

    def test_tampered_payload(self, codec):
        token = codec.create_session(UserSession(user_id="L1", external_auth_id="u1"))
        header, _, signature = token.split(".")
        other = jwt.encode({"sub": "L2", "ext": "u2"}, "x" * 32, algorithm=ALGORITHM)
        forged = f"{header}.{other.split('.')[1]}.{signature}"

        assert codec.read_session(forged) is None

    def test_wrong_issuer(self, codec, settings):
        assert codec.read_session(_encode(settings, iss="someone-else")) is None

    @pytest.mark.parametrize("missing", ["sub", "ext"])
    def test_missing_identity_claim(self, codec, settings, missing):
        assert codec.read_session(_encode(settings, **{missing: None})) is None

    def test_empty_identity_claim(self, codec, settings):
        assert codec.read_session(_encode(settings, sub="")) is None


class TestSessionCookie:

    def test_commit_sets_signed_http_only_cookie(self, codec):
        response = Response()

        codec.commit(response, UserSession(user_id="L1", external_auth_id="u1"))

        cookie = response.headers["set-cookie"]
        assert cookie.startswith("__session=")
        assert "HttpOnly" in cookie
        assert "Secure" in cookie
        assert "SameSite=lax" in cookie
        assert "Max-Age=2592000" in cookie
        assert "Path=/" in cookie

        token = cookie.split(";")[0].split("=", 1)[1]
        assert codec.read_session(token) == UserSession(user_id="L1", external_auth_id="u1")

    def test_destroy_expires_cookie(self, codec):
        response = Response()

        codec.destroy(response)

        cookie = response.headers["set-cookie"]
        assert cookie.startswith("__session=")
        assert "Max-Age=0" in cookie
