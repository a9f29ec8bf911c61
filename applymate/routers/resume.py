import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from applymate.core.security import AuthenticatedUser
from applymate.core.uploads import read_pdf_upload
from applymate.database import get_db
from applymate.dependencies import get_current_user, get_owned_resume
from applymate.models.resume import Resume
from applymate.repos import resume_repo
from applymate.schemas.resume import ResumeOut
from applymate.services import storage
from applymate.services.llm_client import LLMDisabledError, analyze_resume_ats
from applymate.services.resume_text import extract_text_from_pdf_bytes

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/resume", tags=["resumes"])


def _display_name(name: str | None, filename: str | None) -> str:
    if name and name.strip():
        return name.strip()
    base = (filename or "Resume").rsplit("/", 1)[-1]
    return base[:-4] if base.lower().endswith(".pdf") else base


@router.get("")
def list_resumes(
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    try:
        resumes = resume_repo.list_for_user(db, user.id)
        return {"resumes": [ResumeOut.model_validate(r) for r in resumes]}
    except Exception as e:
        logger.exception("Failed listing resumes for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch resumes") from e


@router.post("/upload", status_code=status.HTTP_201_CREATED)
def upload_resume(
    file: UploadFile = File(..., description="Resume PDF file"),
    name: str | None = Form(default=None),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Store a resume PDF and its extracted text."""
    content = read_pdf_upload(file)
    try:
        parsed_text = extract_text_from_pdf_bytes(content)
    except Exception as e:
        logger.warning("Text extraction failed for %s; storing without text: %s", file.filename, e)
        parsed_text = None

    key = storage.resume_key(file.filename)
    try:
        storage.upload_bytes(key, content)
    except Exception as e:
        logger.exception("Resume upload to storage failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload resume") from e

    try:
        resume = resume_repo.create(db, user.id, _display_name(name, file.filename), key, parsed_text or None)
        logger.info("Resume %s uploaded for user %s (%d chars)", resume.id, user.id, len(parsed_text or ""))
        return {"message": "Resume uploaded successfully", "resume": ResumeOut.model_validate(resume)}
    except Exception as e:
        logger.exception("Failed saving resume for user=%s: %s", user.id, e)
        storage.delete_object(key)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save resume") from e


@router.get("/{resume_id}")
def get_resume(resume: Resume = Depends(get_owned_resume)):
    try:
        out = ResumeOut.model_validate(resume)
        out.file_url = storage.signed_url(resume.file_url)
        return {"resume": out}
    except Exception as e:
        logger.exception("Failed signing resume=%s: %s", resume.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch resume") from e


@router.delete("/{resume_id}")
def delete_resume(
    resume: Resume = Depends(get_owned_resume),
    db: Session = Depends(get_db),
):
    resume_id = resume.id
    storage.delete_object(resume.file_url)
    try:
        resume_repo.delete(db, resume)
        logger.info("Resume %s deleted", resume_id)
        return {"message": "Resume deleted successfully"}
    except Exception as e:
        logger.exception("Failed deleting resume=%s: %s", resume_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete resume") from e


@router.post("/{resume_id}/analyze")
def analyze_resume(
    resume: Resume = Depends(get_owned_resume),
    db: Session = Depends(get_db),
):
    """ATS score, grade and improvement actions for a stored resume."""
    if not resume.parsed_text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Resume text not available for analysis")
    try:
        analysis = analyze_resume_ats(resume.parsed_text)
        resume = resume_repo.update_analysis(
            db,
            resume,
            ats_score=analysis["atsScore"],
            ats_grade=analysis["grade"],
            improvement_actions=analysis["improvementActions"],
        )
        logger.info("ATS analysis for resume=%s: %s (%s)", resume.id, resume.ats_score, resume.ats_grade)
        return {"resume": ResumeOut.model_validate(resume)}
    except LLMDisabledError:
        raise
    except Exception as e:
        logger.exception("ATS analysis failed for resume=%s: %s", resume.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to analyze resume") from e
