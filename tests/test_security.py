import base64
import hashlib
import hmac
import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

import applymate.core.security as security
from applymate.config import settings


def _make_key(kid):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = kid
    return private_pem, public_jwk


@pytest.fixture(scope="module")
def rsa_keys():
    return _make_key("test-kid")


@pytest.fixture(scope="module")
def rotated_keys():
    return _make_key("rotated-kid")


class _JwksEndpoint:
    """Serves jwks.json; the published key set can change between fetches."""

    def __init__(self, keys):
        self.keys = list(keys)
        self.fetches = 0

    def get(self, url, timeout):
        self.fetches += 1
        served = {"keys": list(self.keys)}

        class _Resp:
            def raise_for_status(self):
                return None

            def json(self):
                return served

        return _Resp()


@pytest.fixture
def jwks(monkeypatch, rsa_keys):
    endpoint = _JwksEndpoint([rsa_keys[1]])
    monkeypatch.setattr(security.requests, "get", endpoint.get)
    monkeypatch.setattr(security, "_last_jwks_refresh", None)
    security.get_jwks.cache_clear()
    yield endpoint
    security.get_jwks.cache_clear()


def _token(rsa_keys, kid="test-kid", **claims):
    private_pem, _ = rsa_keys
    now = int(time.time())
    payload = {"iss": settings.cognito_issuer, "iat": now, "exp": now + 3600, "sub": "sub-1"}
    payload.update(claims)
    return jwt.encode(payload, private_pem, algorithm="RS256", headers={"kid": kid})


def test_verify_access_token_accepts_valid_token(jwks, rsa_keys):
    token = _token(rsa_keys, token_use="access", client_id=settings.cognito_client_id)
    claims = security.verify_access_token(token)
    assert claims["sub"] == "sub-1"


@pytest.mark.parametrize(
    "claims",
    [
        {"token_use": "id", "client_id": settings.cognito_client_id},
        {"token_use": "access", "client_id": "another-app"},
        {"token_use": "access", "client_id": settings.cognito_client_id, "iss": "https://evil.example.com"},
        {"token_use": "access", "client_id": settings.cognito_client_id, "exp": int(time.time()) - 60},
    ],
)
def test_verify_access_token_rejects_bad_claims(jwks, rsa_keys, claims):
    assert security.verify_access_token(_token(rsa_keys, **claims)) is None


def test_verify_access_token_rejects_unknown_key_and_garbage(jwks, rsa_keys):
    token = _token(rsa_keys, kid="rotated-away", token_use="access", client_id=settings.cognito_client_id)
    assert security.verify_access_token(token) is None
    assert security.verify_access_token("not-a-jwt") is None


def test_verify_id_token_checks_audience_and_token_use(jwks, rsa_keys):
    good = _token(rsa_keys, token_use="id", aud=settings.cognito_client_id, email="jane@example.com")
    assert security.verify_id_token(good)["email"] == "jane@example.com"
    assert security.verify_id_token(_token(rsa_keys, token_use="id", aud="another-app")) is None
    assert security.verify_id_token(_token(rsa_keys, token_use="access", aud=settings.cognito_client_id)) is None


def test_user_from_claims():
    user = security.user_from_claims({"sub": "s", "email": "jane@example.com", "email_verified": "false"})
    assert user == security.AuthenticatedUser(id="s", email="jane@example.com", name="jane", email_verified=False)
    user = security.user_from_claims({"sub": "s", "email": "a@b.c", "name": "Ann", "email_verified": True})
    assert user.name == "Ann"
    assert user.email_verified is True


def test_compute_secret_hash(monkeypatch):
    monkeypatch.setattr(settings, "cognito_client_secret", None)
    assert security.compute_secret_hash("jane@example.com") is None

    monkeypatch.setattr(settings, "cognito_client_secret", "s3cret")
    expected = base64.b64encode(
        hmac.new(b"s3cret", ("jane@example.com" + settings.cognito_client_id).encode(), hashlib.sha256).digest()
    ).decode()
    assert security.compute_secret_hash("jane@example.com") == expected


def test_get_jwks_fetches_once(monkeypatch):
    calls = []

    class _Resp:
        def raise_for_status(self):
            return None

        def json(self):
            return {"keys": [{"kid": "k"}]}

    def _get(url, timeout):
        calls.append(url)
        return _Resp()

    security.get_jwks.cache_clear()
    monkeypatch.setattr(security.requests, "get", _get)
    try:
        assert security.get_jwks() == {"keys": [{"kid": "k"}]}
        security.get_jwks()
        assert calls == [f"{settings.cognito_issuer}/.well-known/jwks.json"]
    finally:
        security.get_jwks.cache_clear()


def test_generate_id_is_unique():
    assert security.generate_id() != security.generate_id()


def test_rotated_signing_key_is_picked_up(jwks, rsa_keys, rotated_keys):
    old = _token(rsa_keys, token_use="access", client_id=settings.cognito_client_id)
    assert security.verify_access_token(old) is not None
    assert jwks.fetches == 1

    jwks.keys.append(rotated_keys[1])
    new = _token(rotated_keys, kid="rotated-kid", token_use="access", client_id=settings.cognito_client_id)
    claims = security.verify_access_token(new)
    assert claims is not None
    assert claims["sub"] == "sub-1"
    assert jwks.fetches == 2


def test_unknown_key_refetch_is_rate_limited(jwks, rsa_keys):
    stray = _token(rsa_keys, kid="never-published", token_use="access", client_id=settings.cognito_client_id)
    assert security.verify_access_token(stray) is None
    assert security.verify_access_token(stray) is None
    # one initial fetch and one refetch; the second miss is inside the refresh interval
    assert jwks.fetches == 2
