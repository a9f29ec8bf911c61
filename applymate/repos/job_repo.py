from typing import Any

from sqlalchemy.orm import Session

from applymate.core.listing import is_status_filter, search_term
from applymate.core.security import generate_id
from applymate.models.chat_message import ChatMessage
from applymate.models.job_application import JobApplication
from applymate.models.job_resume_used import JobResumeUsed
from applymate.models.resume import Resume
from applymate.models.resume_suggestion import ResumeSuggestion

UPDATABLE_FIELDS = ("company", "role", "location", "job_url", "job_description", "notes", "status")
FILE_COLUMNS = {
    "resume": "uploaded_resume_url",
    "coverLetter": "uploaded_cover_letter_url",
}


def list_for_user(
    db: Session,
    user_id: str,
    status: str | None = None,
    search: str | None = None,
    sort: str = "newest",
) -> list[JobApplication]:
    q = db.query(JobApplication).filter(JobApplication.user_id == user_id)
    if is_status_filter(status):
        q = q.filter(JobApplication.status == status)
    term = search_term(search)
    if term:
        q = q.filter(JobApplication.company.ilike(term) | JobApplication.role.ilike(term))
    order = JobApplication.created_at.asc() if sort == "oldest" else JobApplication.created_at.desc()
    return q.order_by(order).all()


def get_for_user(db: Session, job_id: str, user_id: str) -> JobApplication | None:
    return (
        db.query(JobApplication)
        .filter(JobApplication.id == job_id, JobApplication.user_id == user_id)
        .first()
    )


def current_resume(job: JobApplication) -> Resume | None:
    """The resume attached to a job, if any. A job carries at most one link."""
    for link in job.resume_links or []:
        if link.resume is not None:
            return link.resume
    return None


def create(
    db: Session,
    user_id: str,
    *,
    company: str,
    role: str,
    resume_id: str,
    job_url: str | None = None,
    job_description: str | None = None,
    status: str = "saved",
    location: str | None = None,
    notes: str | None = None,
) -> tuple[JobApplication, ResumeSuggestion]:
    """Create a job with its resume link and an empty suggestion in one transaction."""
    job = JobApplication(
        id=generate_id(),
        user_id=user_id,
        company=company,
        role=role,
        location=location,
        job_url=job_url,
        job_description=job_description,
        notes=notes,
        status=status or "saved",
    )
    db.add(job)
    db.flush()
    db.add(JobResumeUsed(id=generate_id(), job_id=job.id, resume_id=resume_id))
    suggestion = ResumeSuggestion(
        id=generate_id(),
        job_id=job.id,
        missing_skills=[],
        suggested_bullets=[],
        ats_keywords=[],
        relevant_experience=[],
    )
    db.add(suggestion)
    db.commit()
    db.refresh(job)
    db.refresh(suggestion)
    return job, suggestion


def update(
    db: Session,
    job: JobApplication,
    fields: dict[str, Any],
    resume_id: str | None = None,
) -> JobApplication:
    """Apply a partial update. A resume id replaces every existing link."""
    for key in UPDATABLE_FIELDS:
        if key in fields:
            setattr(job, key, fields[key])
    if resume_id is not None:
        db.query(JobResumeUsed).filter(JobResumeUsed.job_id == job.id).delete(synchronize_session=False)
        db.add(JobResumeUsed(id=generate_id(), job_id=job.id, resume_id=resume_id))
    db.commit()
    db.expire(job)
    db.refresh(job)
    return job


def set_uploaded_file(db: Session, job: JobApplication, file_type: str, key: str | None) -> JobApplication:
    setattr(job, FILE_COLUMNS[file_type], key)
    db.commit()
    db.refresh(job)
    return job


def uploaded_file_key(job: JobApplication, file_type: str) -> str | None:
    return getattr(job, FILE_COLUMNS[file_type])


def delete(db: Session, job: JobApplication) -> None:
    """Delete a job with its chat messages, suggestion and resume links."""
    db.query(ChatMessage).filter(ChatMessage.job_id == job.id).delete(synchronize_session=False)
    db.query(ResumeSuggestion).filter(ResumeSuggestion.job_id == job.id).delete(synchronize_session=False)
    db.query(JobResumeUsed).filter(JobResumeUsed.job_id == job.id).delete(synchronize_session=False)
    db.expire(job)
    db.delete(job)
    db.commit()


def upsert_suggestion(db: Session, job_id: str, analysis: dict[str, Any]) -> ResumeSuggestion:
    suggestion = db.query(ResumeSuggestion).filter(ResumeSuggestion.job_id == job_id).first()
    if suggestion is None:
        suggestion = ResumeSuggestion(id=generate_id(), job_id=job_id)
        db.add(suggestion)
    suggestion.match_score = analysis.get("matchScore")
    suggestion.missing_skills = analysis.get("missingItems") or []
    suggestion.suggested_bullets = analysis.get("suggestedBullets") or []
    suggestion.improved_summary = analysis.get("improvedSummary") or ""
    suggestion.ats_keywords = analysis.get("skillsMatched") or []
    suggestion.relevant_experience = analysis.get("relevantExperience") or []
    suggestion.improvements = analysis.get("improvements") or []
    db.commit()
    db.refresh(suggestion)
    return suggestion
