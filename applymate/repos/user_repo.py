import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from applymate.core.security import AuthenticatedUser
from applymate.models.user import User

logger = logging.getLogger(__name__)


def get_by_id(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def _insert(db: Session, auth_user: AuthenticatedUser) -> User:
    user = User(
        id=auth_user.id,
        email=auth_user.email,
        name=auth_user.name,
        email_verified=auth_user.email_verified,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the same user first
        db.rollback()
        existing = get_by_id(db, auth_user.id)
        if existing is None:
            raise
        logger.debug("User %s created concurrently; using existing row", auth_user.id)
        return existing
    db.refresh(user)
    logger.info("Created user %s", auth_user.id)
    return user


def ensure_exists(db: Session, auth_user: AuthenticatedUser) -> User:
    """Create the user row on first sight. Never overwrites an existing row."""
    user = get_by_id(db, auth_user.id)
    if user is not None:
        return user
    return _insert(db, auth_user)


def upsert(db: Session, auth_user: AuthenticatedUser) -> User:
    """Create or refresh the user row from identity-token claims (used at login)."""
    user = get_by_id(db, auth_user.id)
    if user is None:
        return _insert(db, auth_user)
    user.email = auth_user.email
    user.name = auth_user.name
    user.email_verified = auth_user.email_verified
    db.commit()
    db.refresh(user)
    return user
