from sqlalchemy.orm import Session

from applymate.models.resume import Resume
from applymate.core.security import generate_id


def create(db: Session, user_id: str, name: str, file_url: str, parsed_text: str | None) -> Resume:
    resume = Resume(
        id=generate_id(),
        user_id=user_id,
        name=name,
        file_url=file_url,
        parsed_text=parsed_text,
    )
    db.add(resume)
    db.commit()
    db.refresh(resume)
    return resume


def list_for_user(db: Session, user_id: str) -> list[Resume]:
    return (
        db.query(Resume)
        .filter(Resume.user_id == user_id)
        .order_by(Resume.created_at.desc())
        .all()
    )


def get_for_user(db: Session, resume_id: str, user_id: str) -> Resume | None:
    return (
        db.query(Resume)
        .filter(Resume.id == resume_id, Resume.user_id == user_id)
        .first()
    )


def update_analysis(
    db: Session,
    resume: Resume,
    *,
    ats_score: int | None,
    ats_grade: str | None,
    improvement_actions: list[str],
) -> Resume:
    resume.ats_score = ats_score
    resume.ats_grade = ats_grade
    resume.improvement_actions = improvement_actions
    db.commit()
    db.refresh(resume)
    return resume


def delete(db: Session, resume: Resume) -> None:
    """Delete the resume and the job links that reference it."""
    db.delete(resume)
    db.commit()
