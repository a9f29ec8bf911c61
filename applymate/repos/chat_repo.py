from sqlalchemy.orm import Session

from applymate.core.security import generate_id
from applymate.models.chat_message import ChatMessage
from applymate.models.contact_chat_message import ContactChatMessage


def list_job_messages(db: Session, job_id: str) -> list[ChatMessage]:
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.job_id == job_id)
        .order_by(ChatMessage.created_at.asc())
        .all()
    )


def recent_job_messages(db: Session, job_id: str, limit: int = 10) -> list[ChatMessage]:
    """Most recent messages, returned oldest first."""
    latest = (
        db.query(ChatMessage)
        .filter(ChatMessage.job_id == job_id)
        .order_by(ChatMessage.created_at.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(latest))


def add_job_message(db: Session, job_id: str, role: str, message: str) -> ChatMessage:
    msg = ChatMessage(id=generate_id(), job_id=job_id, role=role, message=message)
    db.add(msg)
    db.commit()
    db.refresh(msg)
    return msg


def list_contact_messages(db: Session, contact_id: str) -> list[ContactChatMessage]:
    return (
        db.query(ContactChatMessage)
        .filter(ContactChatMessage.contact_id == contact_id)
        .order_by(ContactChatMessage.created_at.asc())
        .all()
    )


def recent_contact_messages(db: Session, contact_id: str, limit: int = 10) -> list[ContactChatMessage]:
    """Most recent messages, returned oldest first."""
    latest = (
        db.query(ContactChatMessage)
        .filter(ContactChatMessage.contact_id == contact_id)
        .order_by(ContactChatMessage.created_at.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(latest))


def add_contact_message(db: Session, contact_id: str, role: str, message: str) -> ContactChatMessage:
    msg = ContactChatMessage(id=generate_id(), contact_id=contact_id, role=role, message=message)
    db.add(msg)
    db.commit()
    db.refresh(msg)
    return msg
