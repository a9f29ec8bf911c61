from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session, joinedload

from applymate.core.security import generate_id
from applymate.models.contact import Contact
from applymate.models.contact_reminder import ContactReminder

UPDATABLE_FIELDS = ("title", "description", "due_date", "completed")


def list_for_contact(db: Session, contact_id: str) -> list[ContactReminder]:
    return (
        db.query(ContactReminder)
        .filter(ContactReminder.contact_id == contact_id)
        .order_by(ContactReminder.due_date.asc())
        .all()
    )


def get_for_contact(db: Session, reminder_id: str, contact_id: str) -> ContactReminder | None:
    return (
        db.query(ContactReminder)
        .filter(ContactReminder.id == reminder_id, ContactReminder.contact_id == contact_id)
        .first()
    )


def create(
    db: Session,
    contact_id: str,
    title: str,
    due_date: datetime,
    description: str | None = None,
) -> ContactReminder:
    reminder = ContactReminder(
        id=generate_id(),
        contact_id=contact_id,
        title=title,
        description=description,
        due_date=due_date,
        completed=False,
    )
    db.add(reminder)
    db.commit()
    db.refresh(reminder)
    return reminder


def update(db: Session, reminder: ContactReminder, fields: dict[str, Any]) -> ContactReminder:
    for key in UPDATABLE_FIELDS:
        if key in fields and fields[key] is not None:
            setattr(reminder, key, fields[key])
    if "description" in fields and fields["description"] is None:
        reminder.description = None
    db.commit()
    db.refresh(reminder)
    return reminder


def delete(db: Session, reminder: ContactReminder) -> None:
    db.delete(reminder)
    db.commit()


def upcoming_for_user(
    db: Session,
    user_id: str,
    limit: int = 10,
    include_overdue: bool = False,
    now: datetime | None = None,
) -> list[ContactReminder]:
    """Incomplete reminders across the user's contacts, soonest first."""
    q = (
        db.query(ContactReminder)
        .join(Contact, ContactReminder.contact_id == Contact.id)
        .options(joinedload(ContactReminder.contact))
        .filter(Contact.user_id == user_id, ContactReminder.completed == False)  # noqa: E712
    )
    if not include_overdue:
        q = q.filter(ContactReminder.due_date >= (now or datetime.now(timezone.utc)))
    return q.order_by(ContactReminder.due_date.asc()).limit(limit).all()
