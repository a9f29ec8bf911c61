from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from applymate.schemas.base import CamelModel, blank_to_none, check_http_url

JobStatus = Literal["saved", "applied", "interviewing", "offer", "rejected"]


class JobCreate(CamelModel):
    company: str = Field(min_length=1, max_length=200)
    role: str = Field(min_length=1, max_length=200)
    job_url: str
    job_description: str | None = Field(default=None, min_length=20, max_length=50000)
    status: JobStatus = "saved"
    resume_id: str = Field(min_length=1)
    location: str | None = Field(default=None, max_length=200)
    notes: str | None = None

    @field_validator("job_url")
    @classmethod
    def valid_url(cls, v: str) -> str:
        return check_http_url(v)

    @field_validator("location", "notes", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)


class JobUpdate(CamelModel):
    company: str | None = Field(default=None, min_length=1, max_length=200)
    role: str | None = Field(default=None, min_length=1, max_length=200)
    location: str | None = Field(default=None, max_length=200)
    job_url: str | None = None
    job_description: str | None = Field(default=None, max_length=50000)
    notes: str | None = None
    status: JobStatus | None = None
    resume_id: str | None = Field(default=None, min_length=1)

    @field_validator("job_url", mode="before")
    @classmethod
    def empty_url_as_none(cls, v):
        return blank_to_none(v)

    @field_validator("job_url")
    @classmethod
    def valid_url(cls, v: str | None) -> str | None:
        return check_http_url(v)


class ParseUrlRequest(CamelModel):
    url: str

    @field_validator("url")
    @classmethod
    def valid_url(cls, v: str) -> str:
        return check_http_url(v)


class ChatMessageCreate(CamelModel):
    message: str = Field(min_length=1, max_length=10000)
    role: Literal["user", "assistant"] = "user"


class ChatMessageOut(CamelModel):
    id: str
    role: str
    message: str
    created_at: datetime | None = None


class SuggestionOut(CamelModel):
    id: str
    job_id: str
    match_score: int | None = None
    missing_skills: list[str] = []
    suggested_bullets: list[str] = []
    improved_summary: str | None = None
    ats_keywords: list[str] = []
    relevant_experience: list[str] = []
    improvements: list[Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class JobOut(CamelModel):
    id: str
    company: str
    role: str
    location: str | None = None
    job_url: str | None = None
    job_description: str | None = None
    notes: str | None = None
    status: str
    uploaded_resume_url: str | None = None
    uploaded_cover_letter_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class JobListItem(CamelModel):
    id: str
    company: str
    role: str
    location: str | None = None
    job_url: str | None = None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resume_used: str | None = None
    resume_id: str | None = None
    match_score: int | None = None


class ResumeRef(CamelModel):
    id: str
    name: str
    file_url: str


class JobDetail(JobOut):
    resume: ResumeRef | None = None
    ai_result: SuggestionOut | None = None
    chats: list[ChatMessageOut] = []


class MatchAnalysis(CamelModel):
    match_score: int
    missing_items: list[str]
    skills_matched: list[str]
    suggested_bullets: list[str]
    improved_summary: str
    relevant_experience: list[str]
    improvements: list[Any]


class ParsedJob(CamelModel):
    job_title: str
    company: str
    location: str
    job_description: str
    responsibilities: str
    requirements: str


class SignedFile(CamelModel):
    url: str
    key: str
