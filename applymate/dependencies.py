import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from applymate.config import settings
from applymate.core.security import AuthenticatedUser, user_from_claims, verify_access_token, verify_id_token
from applymate.database import get_db
from applymate.repos import contact_repo, job_repo, reminder_repo, resume_repo
from applymate.repos.user_repo import ensure_exists

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def authenticate_request(request: Request) -> AuthenticatedUser:
    """Verify the session cookies and return the caller. Raises 401 on any token problem."""
    access_token = request.cookies.get(settings.access_token_cookie)
    id_token = request.cookies.get(settings.id_token_cookie)
    if not access_token or not id_token:
        logger.info("Auth failed: missing session cookies")
        raise _unauthorized("Authentication required")
    if verify_access_token(access_token) is None:
        logger.info("Auth failed: invalid or expired access token")
        raise _unauthorized("Invalid or expired token")
    claims = verify_id_token(id_token)
    if claims is None or not claims.get("sub"):
        logger.info("Auth failed: invalid or expired id token")
        raise _unauthorized("Invalid or expired token")
    return user_from_claims(claims)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> AuthenticatedUser:
    """Authenticated caller with a guaranteed users row."""
    try:
        user = authenticate_request(request)
        ensure_exists(db, user)
        return user
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Authentication failed unexpectedly: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication failed",
        ) from e


def get_owned_job(
    job_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    job = job_repo.get_for_user(db, job_id, user.id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job


def get_owned_resume(
    resume_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    resume = resume_repo.get_for_user(db, resume_id, user.id)
    if not resume:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")
    return resume


def get_owned_contact(
    contact_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    contact = contact_repo.get_for_user(db, contact_id, user.id)
    if not contact:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return contact


def get_owned_reminder(
    contact_id: str,
    reminder_id: str,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Reminder on a contact the caller owns. Both misses look the same to the caller."""
    contact = contact_repo.get_for_user(db, contact_id, user.id)
    reminder = reminder_repo.get_for_contact(db, reminder_id, contact.id) if contact else None
    if not reminder:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return reminder
