"""Thin wrapper over the Cognito user pool API (cognito-idp)."""

import logging
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from applymate.config import settings
from applymate.core.security import compute_secret_hash

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_cognito_client():
    return boto3.client("cognito-idp", region_name=settings.aws_region)


def cognito_error_code(exc: Exception) -> str | None:
    """Cognito exception name (e.g. "UsernameExistsException"), or None for non-Cognito errors."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def cognito_error_message(exc: Exception, default: str) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Message") or default
    return default


def _with_secret_hash(params: dict, username: str) -> dict:
    secret_hash = compute_secret_hash(username)
    if secret_hash:
        params["SecretHash"] = secret_hash
    return params


def sign_up(email: str, password: str, name: str) -> dict:
    params = _with_secret_hash(
        {
            "ClientId": settings.cognito_client_id,
            "Username": email,
            "Password": password,
            "UserAttributes": [
                {"Name": "email", "Value": email},
                {"Name": "name", "Value": name},
            ],
        },
        email,
    )
    return get_cognito_client().sign_up(**params)


def confirm_sign_up(email: str, code: str) -> None:
    params = _with_secret_hash(
        {"ClientId": settings.cognito_client_id, "Username": email, "ConfirmationCode": code},
        email,
    )
    get_cognito_client().confirm_sign_up(**params)


def resend_confirmation_code(email: str) -> None:
    params = _with_secret_hash({"ClientId": settings.cognito_client_id, "Username": email}, email)
    get_cognito_client().resend_confirmation_code(**params)


def initiate_auth(email: str, password: str) -> dict:
    """USER_PASSWORD_AUTH sign-in. Returns the AuthenticationResult (tokens)."""
    auth_params = {"USERNAME": email, "PASSWORD": password}
    secret_hash = compute_secret_hash(email)
    if secret_hash:
        auth_params["SECRET_HASH"] = secret_hash
    resp = get_cognito_client().initiate_auth(
        ClientId=settings.cognito_client_id,
        AuthFlow="USER_PASSWORD_AUTH",
        AuthParameters=auth_params,
    )
    result = resp.get("AuthenticationResult")
    if not result:
        # MFA / NEW_PASSWORD_REQUIRED challenges are not supported
        raise RuntimeError(f"Unsupported Cognito challenge: {resp.get('ChallengeName')}")
    return result


def forgot_password(email: str) -> None:
    params = _with_secret_hash({"ClientId": settings.cognito_client_id, "Username": email}, email)
    get_cognito_client().forgot_password(**params)


def confirm_forgot_password(email: str, code: str, new_password: str) -> None:
    params = _with_secret_hash(
        {
            "ClientId": settings.cognito_client_id,
            "Username": email,
            "ConfirmationCode": code,
            "Password": new_password,
        },
        email,
    )
    get_cognito_client().confirm_forgot_password(**params)


def global_sign_out(access_token: str) -> None:
    get_cognito_client().global_sign_out(AccessToken=access_token)
