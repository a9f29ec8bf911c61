from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from applymate.database import Base, JSONType


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    # S3 key; rows written before keys were stored may hold a full URL
    file_url = Column(String, nullable=False)
    parsed_text = Column(Text)
    ats_score = Column(Integer)
    ats_grade = Column(String)
    improvement_actions = Column(JSONType)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="resumes")
    job_links = relationship("JobResumeUsed", back_populates="resume", cascade="all, delete-orphan")
