from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from applymate.models.contact import Contact
from applymate.models.job_application import JobApplication
from applymate.models.resume import Resume


def period_starts(now: datetime) -> tuple[datetime, datetime]:
    """Start of today and of the current week (weeks start on Sunday), in UTC."""
    start_of_today = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    days_since_sunday = (start_of_today.weekday() + 1) % 7
    return start_of_today, start_of_today - timedelta(days=days_since_sunday)


def dashboard_stats(db: Session, user_id: str, now: datetime | None = None) -> dict:
    start_of_today, start_of_week = period_starts(now or datetime.now(timezone.utc))

    rows = (
        db.query(JobApplication.status, func.count(JobApplication.id))
        .filter(JobApplication.user_id == user_id)
        .group_by(JobApplication.status)
        .all()
    )
    jobs_by_status = {status: count for status, count in rows}
    total_jobs = sum(jobs_by_status.values())

    jobs = db.query(JobApplication).filter(JobApplication.user_id == user_id)
    contacts = db.query(Contact).filter(Contact.user_id == user_id)

    return {
        "jobsByStatus": jobs_by_status,
        "totalJobs": total_jobs,
        "totalJobsApplied": total_jobs - jobs_by_status.get("saved", 0),
        "jobsAppliedToday": jobs.filter(JobApplication.created_at >= start_of_today).count(),
        "jobsAppliedThisWeek": jobs.filter(JobApplication.created_at >= start_of_week).count(),
        "totalContacts": contacts.count(),
        "contactsAddedToday": contacts.filter(Contact.created_at >= start_of_today).count(),
        "contactsAddedThisWeek": contacts.filter(Contact.created_at >= start_of_week).count(),
        "totalResumes": db.query(Resume).filter(Resume.user_id == user_id).count(),
    }
