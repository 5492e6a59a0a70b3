"""Access token verification: HS256 project secret and RS256 via JWKS."""

import datetime as dt
import json
from unittest.mock import MagicMock, patch

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from src.auth import jwks
from src.auth.token_verifier import verify_access_token
from src.config.settings import settings
from tests.conftest import make_token


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def rs256(key, kid="key-1", **claims):
    payload = {
        "sub": "user-9",
        "aud": "authenticated",
        "exp": dt.datetime.now(dt.timezone.utc) + dt.timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, key, algorithm="RS256", headers={"kid": kid})


class TestHs256:
    def test_valid(self):
        assert verify_access_token(make_token("user-1"))["sub"] == "user-1"

    def test_wrong_audience(self):
        assert verify_access_token(make_token("user-1", aud="anon")) is None

    def test_missing_sub(self):
        assert verify_access_token(make_token("")) is None

    def test_garbage(self):
        assert verify_access_token("not.a.jwt") is None

    def test_issuer_checked_when_configured(self):
        with patch.object(settings, "jwt_issuer", "https://project.supabase.co/auth/v1"):
            assert verify_access_token(make_token("user-1")) is None
            token = make_token("user-1", iss="https://project.supabase.co/auth/v1")
            assert verify_access_token(token)["sub"] == "user-1"


class TestJwks:
    def test_rs256_with_published_key(self, rsa_key):
        with patch.object(settings, "jwks_url", "https://project.supabase.co/auth/v1/.well-known/jwks.json"), patch(
            "src.auth.token_verifier.get_jwks", return_value={"key-1": rsa_key.public_key()}
        ):
            assert verify_access_token(rs256(rsa_key))["sub"] == "user-9"

    def test_unknown_kid(self, rsa_key):
        with patch.object(settings, "jwks_url", "https://project.supabase.co/auth/v1/.well-known/jwks.json"), patch(
            "src.auth.token_verifier.get_jwks", return_value={"key-1": rsa_key.public_key()}
        ):
            assert verify_access_token(rs256(rsa_key, kid="rotated")) is None

    def test_rs256_ignored_without_jwks_url(self, rsa_key):
        assert verify_access_token(rs256(rsa_key)) is None


class TestJwksCache:
    def test_fetched_once_per_hour(self, rsa_key):
        jwk = json.loads(RSAAlgorithm.to_jwk(rsa_key.public_key()))
        jwk["kid"] = "key-1"
        res = MagicMock()
        res.json.return_value = {"keys": [jwk, {"kty": "RSA"}]}

        jwks.clear_cache()
        try:
            with patch.object(settings, "jwks_url", "https://project.supabase.co/jwks"), patch(
                "src.auth.jwks.requests.get", return_value=res
            ) as get:
                first = jwks.get_jwks()
                second = jwks.get_jwks()
        finally:
            jwks.clear_cache()

        assert list(first) == ["key-1"]
        assert second is first
        get.assert_called_once()
