from datetime import datetime

from applymate.schemas.base import CamelModel


class ResumeOut(CamelModel):
    id: str
    user_id: str
    name: str
    file_url: str
    parsed_text: str | None = None
    ats_score: int | None = None
    ats_grade: str | None = None
    improvement_actions: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
