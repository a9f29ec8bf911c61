import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from applymate.core.security import AuthenticatedUser
from applymate.core.uploads import read_pdf_upload
from applymate.database import get_db
from applymate.dependencies import get_current_user, get_owned_job
from applymate.models.job_application import JobApplication
from applymate.repos import chat_repo, job_repo
from applymate.repos.resume_repo import get_for_user as get_resume_for_user
from applymate.schemas.job import (
    ChatMessageCreate,
    ChatMessageOut,
    JobCreate,
    JobDetail,
    JobListItem,
    JobOut,
    JobUpdate,
    MatchAnalysis,
    ParsedJob,
    ParseUrlRequest,
    ResumeRef,
    SignedFile,
    SuggestionOut,
)
from applymate.services import storage
from applymate.services.chat_service import CHAT_HISTORY_LIMIT, job_chat_reply
from applymate.services.job_page import JobPageFetchError, parse_job_url
from applymate.services.llm_client import LLMDisabledError, analyze_resume_against_job

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/jobs", tags=["jobs"])

REQUIRED_FIELDS = ("company", "role", "status")


def _job_to_list_item(job: JobApplication) -> JobListItem:
    resume = job_repo.current_resume(job)
    suggestion = job.suggestion
    return JobListItem(
        id=job.id,
        company=job.company,
        role=job.role,
        location=job.location,
        job_url=job.job_url,
        status=job.status,
        created_at=job.created_at,
        updated_at=job.updated_at,
        resume_used=resume.name if resume else None,
        resume_id=resume.id if resume else None,
        match_score=suggestion.match_score if suggestion else None,
    )


def _signed_or_stored(file_url: str) -> str:
    try:
        return storage.signed_url(file_url)
    except Exception as e:
        logger.warning("Could not sign file url %s: %s", file_url, e)
        return file_url


def _job_to_detail(job: JobApplication, messages: list) -> JobDetail:
    resume = job_repo.current_resume(job)
    return JobDetail(
        **JobOut.model_validate(job).model_dump(),
        resume=ResumeRef(id=resume.id, name=resume.name, file_url=_signed_or_stored(resume.file_url)) if resume else None,
        ai_result=SuggestionOut.model_validate(job.suggestion) if job.suggestion else None,
        chats=[ChatMessageOut.model_validate(m) for m in messages],
    )


@router.get("")
def list_jobs(
    status_filter: str | None = Query(default=None, alias="status"),
    search: str | None = None,
    sort: str = "newest",
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    try:
        jobs = job_repo.list_for_user(db, user.id, status=status_filter, search=search, sort=sort)
        logger.debug("GET /api/jobs user=%s count=%d", user.id, len(jobs))
        return {"jobs": [_job_to_list_item(j) for j in jobs]}
    except Exception as e:
        logger.exception("Failed listing jobs for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch jobs") from e


@router.post("/add", status_code=status.HTTP_201_CREATED)
def add_job(
    data: JobCreate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    try:
        if not get_resume_for_user(db, data.resume_id, user.id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")
        job, suggestion = job_repo.create(
            db,
            user.id,
            company=data.company,
            role=data.role,
            resume_id=data.resume_id,
            job_url=data.job_url,
            job_description=data.job_description,
            status=data.status,
            location=data.location,
            notes=data.notes,
        )
        logger.info("Job %s added for user %s", job.id, user.id)
        return {
            "message": "Job added successfully",
            "job": JobOut.model_validate(job),
            "suggestion": SuggestionOut.model_validate(suggestion),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Failed adding job for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add job") from e


@router.post("/parse-url")
def parse_job_from_url(
    data: ParseUrlRequest,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Fetch a job posting page and extract title, company, description and requirements."""
    try:
        job = parse_job_url(data.url)
        return {"success": True, "job": ParsedJob(**job)}
    except JobPageFetchError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to fetch job posting from URL"
        ) from e
    except LLMDisabledError:
        raise
    except Exception as e:
        logger.exception("Job posting parse failed url=%s user=%s: %s", data.url, user.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to parse job posting"
        ) from e


@router.get("/{job_id}")
def get_job(
    job: JobApplication = Depends(get_owned_job),
    db: Session = Depends(get_db),
):
    try:
        messages = chat_repo.list_job_messages(db, job.id)
        return {"job": _job_to_detail(job, messages)}
    except Exception as e:
        logger.exception("Failed loading job=%s: %s", job.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch job") from e


@router.patch("/{job_id}")
def update_job(
    data: JobUpdate,
    job: JobApplication = Depends(get_owned_job),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    fields = data.model_dump(exclude_unset=True)
    resume_id = fields.pop("resume_id", None)
    for key in REQUIRED_FIELDS:
        if key in fields and fields[key] is None:
            fields.pop(key)
    try:
        if resume_id and not get_resume_for_user(db, resume_id, user.id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")
        job = job_repo.update(db, job, fields, resume_id=resume_id)
        logger.info("Job %s updated for user %s", job.id, user.id)
        return {"message": "Job updated successfully", "job": JobOut.model_validate(job)}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Failed updating job=%s: %s", job.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update job") from e


@router.delete("/{job_id}")
def delete_job(
    job: JobApplication = Depends(get_owned_job),
    db: Session = Depends(get_db),
):
    job_id = job.id
    storage.delete_object(job.uploaded_resume_url)
    storage.delete_object(job.uploaded_cover_letter_url)
    try:
        job_repo.delete(db, job)
        logger.info("Job %s deleted", job_id)
        return {"message": "Job deleted successfully"}
    except Exception as e:
        logger.exception("Failed deleting job=%s: %s", job_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete job") from e


@router.get("/{job_id}/files")
def get_job_files(job: JobApplication = Depends(get_owned_job)):
    try:
        files = {}
        for file_type in storage.JOB_FILE_TYPES:
            key = job_repo.uploaded_file_key(job, file_type)
            if key:
                files[file_type] = SignedFile(url=storage.signed_url(key), key=key)
        return {"files": files}
    except Exception as e:
        logger.exception("Failed signing files for job=%s: %s", job.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch files") from e


@router.get("/{job_id}/files/{file_type}")
def download_job_file(
    file_type: str,
    job: JobApplication = Depends(get_owned_job),
):
    if file_type not in storage.JOB_FILE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Must be 'resume' or 'coverLetter'",
        )
    key = job_repo.uploaded_file_key(job, file_type)
    if not key:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return RedirectResponse(storage.signed_url(key, inline=True), status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.post("/{job_id}/upload")
def upload_job_file(
    file: UploadFile = File(..., description="PDF file"),
    file_type: str = Form(..., alias="type"),
    job: JobApplication = Depends(get_owned_job),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    if file_type not in storage.JOB_FILE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Must be 'resume' or 'coverLetter'",
        )
    content = read_pdf_upload(file)
    try:
        storage.delete_object(job_repo.uploaded_file_key(job, file_type))
        key = storage.upload_bytes(storage.job_file_key(user.id, job.id, file_type, file.filename), content)
        job = job_repo.set_uploaded_file(db, job, file_type, key)
        return {"message": "File uploaded successfully", "key": key, "job": JobOut.model_validate(job)}
    except Exception as e:
        logger.exception("Upload failed for job=%s type=%s: %s", job.id, file_type, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload file") from e


@router.post("/{job_id}/match-score")
def calculate_match_score(
    job: JobApplication = Depends(get_owned_job),
    db: Session = Depends(get_db),
):
    """Analyze the attached resume against this job's description and store the result."""
    if not job.job_description:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Job description is required to calculate match score",
        )
    resume = job_repo.current_resume(job)
    if not resume:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No resume attached to this job")
    if not resume.parsed_text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Resume text not available for analysis")
    try:
        analysis = analyze_resume_against_job(resume.parsed_text, job.job_description)
        suggestion = job_repo.upsert_suggestion(db, job.id, analysis)
        logger.info("Match score for job=%s: %s", job.id, analysis["matchScore"])
        return {"suggestion": SuggestionOut.model_validate(suggestion), "analysis": MatchAnalysis(**analysis)}
    except LLMDisabledError:
        raise
    except Exception as e:
        logger.exception("Match score failed for job=%s: %s", job.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to calculate match score"
        ) from e


@router.get("/{job_id}/chat")
def get_job_chat(
    job: JobApplication = Depends(get_owned_job),
    db: Session = Depends(get_db),
):
    try:
        messages = chat_repo.list_job_messages(db, job.id)
        return {"messages": [ChatMessageOut.model_validate(m) for m in messages]}
    except Exception as e:
        logger.exception("Failed loading chat for job=%s: %s", job.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch chat messages"
        ) from e


@router.post("/{job_id}/chat", status_code=status.HTTP_201_CREATED)
def post_job_chat(
    data: ChatMessageCreate,
    job: JobApplication = Depends(get_owned_job),
    db: Session = Depends(get_db),
):
    try:
        if data.role == "assistant":
            msg = chat_repo.add_job_message(db, job.id, "assistant", data.message)
            return {"message": ChatMessageOut.model_validate(msg)}

        history = chat_repo.recent_job_messages(db, job.id, limit=CHAT_HISTORY_LIMIT)
        resume = job_repo.current_resume(job)
        # both turns are stored only once the model has replied
        reply = job_chat_reply(job, resume.parsed_text if resume else None, history, data.message)
        user_msg = chat_repo.add_job_message(db, job.id, "user", data.message)
        assistant_msg = chat_repo.add_job_message(db, job.id, "assistant", reply)
        return {
            "userMessage": ChatMessageOut.model_validate(user_msg),
            "assistantMessage": ChatMessageOut.model_validate(assistant_msg),
        }
    except LLMDisabledError:
        raise
    except Exception as e:
        logger.exception("Chat failed for job=%s: %s", job.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send message") from e
