from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from applymate.core.listing import is_status_filter, search_term
from applymate.core.security import generate_id
from applymate.models.contact import Contact
from applymate.models.contact_interaction import CONTACTED_TYPES, ContactInteraction
from applymate.models.contact_reminder import ContactReminder

UPDATABLE_FIELDS = ("name", "company", "role", "linked_in_url", "email", "notes", "status", "last_contacted_at")


def list_for_user(
    db: Session,
    user_id: str,
    status: str | None = None,
    search: str | None = None,
    sort: str = "newest",
) -> list[Contact]:
    q = db.query(Contact).filter(Contact.user_id == user_id)
    if is_status_filter(status):
        q = q.filter(Contact.status == status)
    term = search_term(search)
    if term:
        q = q.filter(Contact.name.ilike(term) | Contact.company.ilike(term) | Contact.role.ilike(term))
    order = Contact.created_at.asc() if sort == "oldest" else Contact.created_at.desc()
    return q.order_by(order).all()


def get_for_user(db: Session, contact_id: str, user_id: str) -> Contact | None:
    return (
        db.query(Contact)
        .filter(Contact.id == contact_id, Contact.user_id == user_id)
        .first()
    )


def create(db: Session, user_id: str, **fields: Any) -> Contact:
    contact = Contact(id=generate_id(), user_id=user_id)
    for key in UPDATABLE_FIELDS:
        if fields.get(key) is not None:
            setattr(contact, key, fields[key])
    if not contact.status:
        contact.status = "not_contacted"
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def update(db: Session, contact: Contact, fields: dict[str, Any]) -> Contact:
    for key in UPDATABLE_FIELDS:
        if key in fields:
            setattr(contact, key, fields[key])
    db.commit()
    db.refresh(contact)
    return contact


def delete(db: Session, contact: Contact) -> None:
    """Delete a contact; interactions, reminders and chat messages go with it."""
    db.delete(contact)
    db.commit()


def last_interaction(db: Session, contact_id: str) -> ContactInteraction | None:
    return (
        db.query(ContactInteraction)
        .filter(ContactInteraction.contact_id == contact_id)
        .order_by(ContactInteraction.created_at.desc())
        .first()
    )


def next_reminder(db: Session, contact_id: str, now: datetime | None = None) -> ContactReminder | None:
    """Earliest incomplete reminder due now or later."""
    now = now or datetime.now(timezone.utc)
    return (
        db.query(ContactReminder)
        .filter(
            ContactReminder.contact_id == contact_id,
            ContactReminder.completed == False,  # noqa: E712
            ContactReminder.due_date >= now,
        )
        .order_by(ContactReminder.due_date.asc())
        .first()
    )


def list_interactions(db: Session, contact_id: str) -> list[ContactInteraction]:
    return (
        db.query(ContactInteraction)
        .filter(ContactInteraction.contact_id == contact_id)
        .order_by(ContactInteraction.created_at.desc())
        .all()
    )


def add_interaction(db: Session, contact: Contact, type: str, notes: str | None = None) -> ContactInteraction:
    """Record an interaction. Outreach types also stamp the contact's last_contacted_at."""
    interaction = ContactInteraction(
        id=generate_id(),
        contact_id=contact.id,
        type=type,
        notes=notes,
    )
    db.add(interaction)
    if type.lower() in CONTACTED_TYPES:
        contact.last_contacted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(interaction)
    return interaction
