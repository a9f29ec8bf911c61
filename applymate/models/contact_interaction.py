from sqlalchemy import Column, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from applymate.database import Base

# Interaction types that count as having reached out to the contact
CONTACTED_TYPES = frozenset({"messaged", "replied", "scheduled_call", "met", "connected"})


class ContactInteraction(Base):
    __tablename__ = "contact_interactions"

    id = Column(String, primary_key=True, index=True)
    contact_id = Column(String, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    contact = relationship("Contact", back_populates="interactions")
