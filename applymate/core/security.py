import base64
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from uuid import uuid4

import requests
from jose import JWTError, jwt

from applymate.config import settings

logger = logging.getLogger(__name__)

_last_jwks_refresh: float | None = None


@dataclass
class AuthenticatedUser:
    id: str
    email: str
    name: str | None = None
    email_verified: bool = False


@lru_cache(maxsize=1)
def get_jwks() -> dict:
    """Fetch the user pool's public signing keys. Cached until an unknown key id forces a refetch."""
    url = f"{settings.cognito_issuer}/.well-known/jwks.json"
    resp = requests.get(url, timeout=settings.jwks_timeout_seconds)
    resp.raise_for_status()
    keys = resp.json()
    logger.info("Loaded %d Cognito signing keys", len(keys.get("keys", [])))
    return keys


def _find_key(kid: str | None) -> dict | None:
    for key in get_jwks().get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


def _refresh_jwks() -> bool:
    """Drop the cached key set so the next lookup refetches it. At most once per refresh interval."""
    global _last_jwks_refresh
    now = time.monotonic()
    if _last_jwks_refresh is not None and now - _last_jwks_refresh < settings.jwks_refresh_interval_seconds:
        return False
    _last_jwks_refresh = now
    get_jwks.cache_clear()
    return True


def _signing_key(token: str) -> dict | None:
    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except JWTError:
        return None
    key = _find_key(kid)
    if key is None and _refresh_jwks():
        # Cognito rotated its keys since the set was cached
        logger.info("Unknown signing key %s; refetching JWKS", kid)
        key = _find_key(kid)
    return key


def verify_access_token(token: str) -> dict | None:
    """Return claims of a valid Cognito access token, or None."""
    key = _signing_key(token)
    if key is None:
        return None
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=["RS256"],
            issuer=settings.cognito_issuer,
            options={"verify_aud": False},
        )
    except JWTError as e:
        logger.info("Access token rejected: %s", e)
        return None
    if claims.get("token_use") != "access" or claims.get("client_id") != settings.cognito_client_id:
        logger.info("Access token rejected: wrong token_use or client")
        return None
    return claims


def verify_id_token(token: str) -> dict | None:
    """Return claims of a valid Cognito identity token, or None."""
    key = _signing_key(token)
    if key is None:
        return None
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=["RS256"],
            audience=settings.cognito_client_id,
            issuer=settings.cognito_issuer,
            options={"verify_at_hash": False},
        )
    except JWTError as e:
        logger.info("ID token rejected: %s", e)
        return None
    if claims.get("token_use") != "id":
        logger.info("ID token rejected: token_use=%s", claims.get("token_use"))
        return None
    return claims


def user_from_claims(claims: dict) -> AuthenticatedUser:
    email = claims.get("email") or ""
    verified = claims.get("email_verified")
    if isinstance(verified, str):
        verified = verified.lower() == "true"
    return AuthenticatedUser(
        id=claims["sub"],
        email=email,
        name=claims.get("name") or (email.split("@")[0] if email else None),
        email_verified=bool(verified),
    )


def compute_secret_hash(username: str) -> str | None:
    """SECRET_HASH for Cognito calls when the app client has a secret."""
    if not settings.cognito_client_secret:
        return None
    digest = hmac.new(
        settings.cognito_client_secret.encode(),
        (username + settings.cognito_client_id).encode(),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode()


def generate_id() -> str:
    return str(uuid4())
