import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from applymate.config import settings
from applymate.core.security import AuthenticatedUser, user_from_claims, verify_id_token
from applymate.database import get_db
from applymate.dependencies import get_current_user
from applymate.repos.user_repo import upsert as upsert_user
from applymate.schemas.auth import (
    EmailRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UserOut,
    VerifyRequest,
)
from applymate.services import cognito
from applymate.services.cognito import cognito_error_code, cognito_error_message

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])

CODE_SENT_MESSAGE = "If an account exists for this email, a code has been sent."
THROTTLED = {"LimitExceededException", "TooManyRequestsException", "TooManyFailedAttemptsException"}


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def _user_to_response(user: AuthenticatedUser) -> UserOut:
    return UserOut(id=user.id, email=user.email, name=user.name, email_verified=user.email_verified)


def _set_session_cookies(response: Response, tokens: dict) -> None:
    common = {"httponly": True, "secure": settings.is_production, "samesite": "lax", "path": "/"}
    response.set_cookie(
        settings.access_token_cookie, tokens["AccessToken"], max_age=settings.token_cookie_max_age, **common
    )
    response.set_cookie(settings.id_token_cookie, tokens["IdToken"], max_age=settings.token_cookie_max_age, **common)
    if tokens.get("RefreshToken"):
        response.set_cookie(
            settings.refresh_token_cookie,
            tokens["RefreshToken"],
            max_age=settings.refresh_cookie_max_age,
            **common,
        )


def _clear_session_cookies(response: Response) -> None:
    for name in (settings.access_token_cookie, settings.id_token_cookie, settings.refresh_token_cookie):
        response.delete_cookie(name, path="/", httponly=True, secure=settings.is_production, samesite="lax")


@router.post("/signup")
def signup(data: SignupRequest):
    try:
        resp = cognito.sign_up(data.email, data.password, data.name)
        logger.info("User signed up: %s", data.email)
        return {
            "success": True,
            "message": "Account created. Check your email for a verification code.",
            "userConfirmed": bool(resp.get("UserConfirmed")),
            "email": data.email,
        }
    except Exception as e:
        code = cognito_error_code(e)
        if code == "UsernameExistsException":
            return _error(status.HTTP_400_BAD_REQUEST, "An account with this email already exists")
        if code in {"InvalidPasswordException", "InvalidParameterException"}:
            return _error(status.HTTP_400_BAD_REQUEST, cognito_error_message(e, "Invalid signup details"))
        if code in THROTTLED:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, "Too many requests. Please retry shortly.")
        logger.exception("Signup failed for email=%s: %s", data.email, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Signup failed") from e


@router.post("/login")
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    try:
        tokens = cognito.initiate_auth(data.email, data.password)
    except Exception as e:
        code = cognito_error_code(e)
        if code in {"NotAuthorizedException", "UserNotFoundException"}:
            logger.info("Login rejected for email=%s: %s", data.email, code)
            return _error(status.HTTP_401_UNAUTHORIZED, "Invalid email or password")
        if code == "UserNotConfirmedException":
            return _error(
                status.HTTP_401_UNAUTHORIZED,
                "Please verify your email before logging in",
                needsVerification=True,
                email=data.email,
            )
        if code == "PasswordResetRequiredException":
            return _error(
                status.HTTP_401_UNAUTHORIZED,
                "Password reset required",
                needsPasswordReset=True,
                email=data.email,
            )
        if code in THROTTLED:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, "Too many requests. Please retry shortly.")
        logger.exception("Login failed for email=%s: %s", data.email, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Login failed") from e

    try:
        claims = verify_id_token(tokens.get("IdToken", ""))
        if claims is None:
            logger.error("Login for email=%s returned an id token that failed verification", data.email)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Login failed")
        user = user_from_claims(claims)
        upsert_user(db, user)
        _set_session_cookies(response, tokens)
        logger.info("User logged in: %s", user.email)
        return {"success": True, "message": "Login successful", "user": _user_to_response(user)}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Login user sync failed for email=%s: %s", data.email, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Login failed") from e


@router.post("/logout")
def logout(request: Request, response: Response):
    access_token = request.cookies.get(settings.access_token_cookie)
    if access_token:
        try:
            cognito.global_sign_out(access_token)
        except Exception as e:
            logger.warning("Global sign-out failed; clearing cookies anyway: %s", e)
    _clear_session_cookies(response)
    return {"success": True, "message": "Logged out"}


@router.get("/me")
def get_me(user: AuthenticatedUser = Depends(get_current_user)):
    return {"success": True, "user": _user_to_response(user)}


@router.post("/verify")
def verify_email(data: VerifyRequest):
    try:
        cognito.confirm_sign_up(data.email, data.code)
        logger.info("Email verified: %s", data.email)
        return {"success": True, "message": "Email verified. You can now log in."}
    except Exception as e:
        code = cognito_error_code(e)
        if code == "CodeMismatchException":
            return _error(status.HTTP_400_BAD_REQUEST, "Invalid verification code")
        if code == "ExpiredCodeException":
            return _error(status.HTTP_400_BAD_REQUEST, "Verification code has expired. Request a new one.")
        if code == "NotAuthorizedException":
            return _error(status.HTTP_400_BAD_REQUEST, "This account is already verified")
        if code == "UserNotFoundException":
            return _error(status.HTTP_404_NOT_FOUND, "User not found")
        if code in THROTTLED:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, "Too many attempts. Please retry shortly.")
        logger.exception("Verification failed for email=%s: %s", data.email, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Verification failed") from e


@router.put("/verify")
def resend_verification_code(data: EmailRequest):
    try:
        cognito.resend_confirmation_code(data.email)
        return {"success": True, "message": CODE_SENT_MESSAGE}
    except Exception as e:
        code = cognito_error_code(e)
        if code == "UserNotFoundException":
            # Don't reveal whether the email exists
            return {"success": True, "message": CODE_SENT_MESSAGE}
        if code in THROTTLED:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, "Too many requests. Please retry shortly.")
        if code in {"InvalidParameterException", "NotAuthorizedException"}:
            return _error(status.HTTP_400_BAD_REQUEST, "This account is already verified")
        logger.exception("Resend code failed for email=%s: %s", data.email, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to resend verification code"
        ) from e


@router.post("/forgot-password")
def forgot_password(data: EmailRequest):
    try:
        cognito.forgot_password(data.email)
        logger.info("Password reset code requested for %s", data.email)
    except Exception as e:
        code = cognito_error_code(e)
        if code in THROTTLED:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, "Too many requests. Please retry shortly.")
        if code not in {"UserNotFoundException", "InvalidParameterException", "NotAuthorizedException"}:
            logger.exception("Forgot-password flow failed for email=%s: %s", data.email, e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to process request"
            ) from e
        logger.info("Forgot-password for email=%s ignored: %s", data.email, code)
    return {"success": True, "message": CODE_SENT_MESSAGE}


@router.post("/reset-password")
def reset_password(data: ResetPasswordRequest):
    try:
        cognito.confirm_forgot_password(data.email, data.code, data.new_password)
        logger.info("Password reset for %s", data.email)
        return {"success": True, "message": "Password reset. You can now log in."}
    except Exception as e:
        code = cognito_error_code(e)
        if code in {"CodeMismatchException", "ExpiredCodeException", "UserNotFoundException"}:
            return _error(status.HTTP_400_BAD_REQUEST, "Invalid or expired code")
        if code == "InvalidPasswordException":
            return _error(status.HTTP_400_BAD_REQUEST, cognito_error_message(e, "Password does not meet requirements"))
        if code in THROTTLED:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, "Too many attempts. Please retry shortly.")
        logger.exception("Password reset failed for email=%s: %s", data.email, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Password reset failed") from e
