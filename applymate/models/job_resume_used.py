from sqlalchemy import Column, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from applymate.database import Base


class JobResumeUsed(Base):
    __tablename__ = "job_resume_used"
    __table_args__ = (UniqueConstraint("job_id", "resume_id", name="uq_job_resume_used"),)

    id = Column(String, primary_key=True, index=True)
    job_id = Column(String, ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    resume_id = Column(String, ForeignKey("resumes.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    job = relationship("JobApplication", back_populates="resume_links")
    resume = relationship("Resume", back_populates="job_links")
