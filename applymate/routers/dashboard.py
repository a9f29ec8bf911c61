import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from applymate.core.security import AuthenticatedUser
from applymate.database import get_db
from applymate.dependencies import get_current_user
from applymate.repos.stats_repo import dashboard_stats

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
def get_dashboard_stats(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Job counts by status plus today/this-week activity for jobs and contacts."""
    try:
        return {"stats": dashboard_stats(db, user.id)}
    except Exception as e:
        logger.exception("Failed computing dashboard stats for user=%s: %s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch dashboard stats"
        ) from e
