from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from applymate.database import Base, JSONType


class ResumeSuggestion(Base):
    """AI analysis of the attached resume against one job application."""

    __tablename__ = "resume_suggestions"

    id = Column(String, primary_key=True, index=True)
    job_id = Column(
        String, ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    match_score = Column(Integer)
    missing_skills = Column(JSONType, default=list)
    suggested_bullets = Column(JSONType, default=list)
    improved_summary = Column(Text)
    ats_keywords = Column(JSONType, default=list)
    relevant_experience = Column(JSONType, default=list)
    improvements = Column(JSONType)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    job = relationship("JobApplication", back_populates="suggestion")
