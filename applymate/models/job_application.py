from sqlalchemy import Column, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from applymate.database import Base


class JobApplication(Base):
    __tablename__ = "job_applications"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    company = Column(String, nullable=False)
    role = Column(String, nullable=False)
    location = Column(String)
    job_url = Column(String)
    job_description = Column(Text)
    notes = Column(Text)
    status = Column(String, default="saved", nullable=False)
    # S3 keys for files attached to this application
    uploaded_resume_url = Column(String)
    uploaded_cover_letter_url = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="jobs")
    resume_links = relationship("JobResumeUsed", back_populates="job", cascade="all, delete-orphan")
    suggestion = relationship(
        "ResumeSuggestion", back_populates="job", uselist=False, cascade="all, delete-orphan"
    )
    chat_messages = relationship(
        "ChatMessage",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )
