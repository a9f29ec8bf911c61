from sqlalchemy import Column, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from applymate.database import Base


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    company = Column(String)
    role = Column(String)
    linked_in_url = Column(String)
    email = Column(String)
    notes = Column(Text)
    status = Column(String, default="not_contacted", nullable=False)
    last_contacted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="contacts")
    interactions = relationship(
        "ContactInteraction",
        back_populates="contact",
        cascade="all, delete-orphan",
        order_by="ContactInteraction.created_at.desc()",
    )
    reminders = relationship(
        "ContactReminder",
        back_populates="contact",
        cascade="all, delete-orphan",
        order_by="ContactReminder.due_date",
    )
    chat_messages = relationship(
        "ContactChatMessage",
        back_populates="contact",
        cascade="all, delete-orphan",
        order_by="ContactChatMessage.created_at",
    )
