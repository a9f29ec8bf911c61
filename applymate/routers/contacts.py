import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from applymate.core.listing import group_by
from applymate.core.security import AuthenticatedUser
from applymate.database import get_db
from applymate.dependencies import get_current_user, get_owned_contact, get_owned_reminder
from applymate.models.contact import Contact
from applymate.models.contact_reminder import ContactReminder
from applymate.repos import chat_repo, contact_repo, reminder_repo
from applymate.schemas.contact import (
    ContactCreate,
    ContactDetail,
    ContactListItem,
    ContactOut,
    ContactSummary,
    ContactUpdate,
    InteractionCreate,
    InteractionOut,
    ReminderCreate,
    ReminderOut,
    ReminderUpdate,
    UpcomingReminderOut,
)
from applymate.schemas.job import ChatMessageCreate, ChatMessageOut
from applymate.services.chat_service import CHAT_HISTORY_LIMIT, contact_chat_reply
from applymate.services.llm_client import LLMDisabledError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/contacts", tags=["contacts"])


def _contact_to_list_item(db: Session, contact: Contact, now: datetime) -> ContactListItem:
    last = contact_repo.last_interaction(db, contact.id)
    upcoming = contact_repo.next_reminder(db, contact.id, now=now)
    return ContactListItem(
        **ContactOut.model_validate(contact).model_dump(),
        last_interaction=InteractionOut.model_validate(last) if last else None,
        next_reminder=ReminderOut.model_validate(upcoming) if upcoming else None,
    )


def _reminder_to_upcoming(reminder: ContactReminder) -> UpcomingReminderOut:
    return UpcomingReminderOut(
        **ReminderOut.model_validate(reminder).model_dump(),
        contact=ContactSummary.model_validate(reminder.contact),
    )


@router.get("")
def list_contacts(
    status_filter: str | None = Query(default=None, alias="status"),
    search: str | None = None,
    sort: str = "newest",
    group_by_company: bool = Query(default=False, alias="groupByCompany"),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    try:
        now = datetime.now(timezone.utc)
        contacts = contact_repo.list_for_user(db, user.id, status=status_filter, search=search, sort=sort)
        items = [_contact_to_list_item(db, c, now) for c in contacts]
        body = {"contacts": items}
        if group_by_company:
            body["grouped"] = group_by(items, key=lambda c: c.company)
        return body
    except Exception as e:
        logger.exception("Failed listing contacts for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch contacts") from e


@router.post("", status_code=status.HTTP_201_CREATED)
def create_contact(
    data: ContactCreate,
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    try:
        contact = contact_repo.create(db, user.id, **data.model_dump())
        logger.info("Contact %s created for user %s", contact.id, user.id)
        return {"message": "Contact created successfully", "contact": ContactOut.model_validate(contact)}
    except Exception as e:
        logger.exception("Failed creating contact for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create contact") from e


@router.get("/reminders/upcoming")
def upcoming_reminders(
    limit: int = Query(default=10, ge=1, le=100),
    include_overdue: bool = Query(default=False, alias="includeOverdue"),
    db: Session = Depends(get_db),
    user: AuthenticatedUser = Depends(get_current_user),
):
    try:
        reminders = reminder_repo.upcoming_for_user(db, user.id, limit=limit, include_overdue=include_overdue)
        return {"reminders": [_reminder_to_upcoming(r) for r in reminders]}
    except Exception as e:
        logger.exception("Failed loading upcoming reminders for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch reminders") from e


@router.get("/{contact_id}")
def get_contact(
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    try:
        detail = ContactDetail(
            **ContactOut.model_validate(contact).model_dump(),
            interactions=[InteractionOut.model_validate(i) for i in contact_repo.list_interactions(db, contact.id)],
            reminders=[ReminderOut.model_validate(r) for r in reminder_repo.list_for_contact(db, contact.id)],
        )
        return {"contact": detail}
    except Exception as e:
        logger.exception("Failed loading contact=%s: %s", contact.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch contact") from e


@router.patch("/{contact_id}")
def update_contact(
    data: ContactUpdate,
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    fields = data.model_dump(exclude_unset=True)
    for key in ("name", "status"):
        if key in fields and fields[key] is None:
            fields.pop(key)
    try:
        contact = contact_repo.update(db, contact, fields)
        return {"message": "Contact updated successfully", "contact": ContactOut.model_validate(contact)}
    except Exception as e:
        logger.exception("Failed updating contact=%s: %s", contact.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update contact") from e


@router.delete("/{contact_id}")
def delete_contact(
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    contact_id = contact.id
    try:
        contact_repo.delete(db, contact)
        logger.info("Contact %s deleted", contact_id)
        return {"message": "Contact deleted successfully"}
    except Exception as e:
        logger.exception("Failed deleting contact=%s: %s", contact_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete contact") from e


@router.get("/{contact_id}/interactions")
def list_interactions(
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    try:
        interactions = contact_repo.list_interactions(db, contact.id)
        return {"interactions": [InteractionOut.model_validate(i) for i in interactions]}
    except Exception as e:
        logger.exception("Failed listing interactions for contact=%s: %s", contact.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch interactions"
        ) from e


@router.post("/{contact_id}/interactions", status_code=status.HTTP_201_CREATED)
def create_interaction(
    data: InteractionCreate,
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    try:
        interaction = contact_repo.add_interaction(db, contact, data.type, data.notes)
        return {"interaction": InteractionOut.model_validate(interaction)}
    except Exception as e:
        logger.exception("Failed creating interaction for contact=%s: %s", contact.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create interaction"
        ) from e


@router.get("/{contact_id}/reminders")
def list_reminders(
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    try:
        reminders = reminder_repo.list_for_contact(db, contact.id)
        return {"reminders": [ReminderOut.model_validate(r) for r in reminders]}
    except Exception as e:
        logger.exception("Failed listing reminders for contact=%s: %s", contact.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch reminders") from e


@router.post("/{contact_id}/reminders", status_code=status.HTTP_201_CREATED)
def create_reminder(
    data: ReminderCreate,
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    try:
        reminder = reminder_repo.create(db, contact.id, data.title, data.due_date, description=data.description)
        return {"reminder": ReminderOut.model_validate(reminder)}
    except Exception as e:
        logger.exception("Failed creating reminder for contact=%s: %s", contact.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create reminder") from e


@router.patch("/{contact_id}/reminders/{reminder_id}")
def update_reminder(
    data: ReminderUpdate,
    reminder: ContactReminder = Depends(get_owned_reminder),
    db: Session = Depends(get_db),
):
    try:
        reminder = reminder_repo.update(db, reminder, data.model_dump(exclude_unset=True))
        return {"reminder": ReminderOut.model_validate(reminder)}
    except Exception as e:
        logger.exception("Failed updating reminder=%s: %s", reminder.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update reminder") from e


@router.delete("/{contact_id}/reminders/{reminder_id}")
def delete_reminder(
    reminder: ContactReminder = Depends(get_owned_reminder),
    db: Session = Depends(get_db),
):
    reminder_id = reminder.id
    try:
        reminder_repo.delete(db, reminder)
        return {"message": "Reminder deleted successfully"}
    except Exception as e:
        logger.exception("Failed deleting reminder=%s: %s", reminder_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete reminder") from e


@router.get("/{contact_id}/chat")
def get_contact_chat(
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    try:
        messages = chat_repo.list_contact_messages(db, contact.id)
        return {"messages": [ChatMessageOut.model_validate(m) for m in messages]}
    except Exception as e:
        logger.exception("Failed loading chat for contact=%s: %s", contact.id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch chat messages"
        ) from e


@router.post("/{contact_id}/chat", status_code=status.HTTP_201_CREATED)
def post_contact_chat(
    data: ChatMessageCreate,
    contact: Contact = Depends(get_owned_contact),
    db: Session = Depends(get_db),
):
    """Outreach assistant: a user message gets a reply built from the contact and recent history."""
    try:
        if data.role == "assistant":
            msg = chat_repo.add_contact_message(db, contact.id, "assistant", data.message)
            return {"messages": [ChatMessageOut.model_validate(msg)]}

        history = chat_repo.recent_contact_messages(db, contact.id, limit=CHAT_HISTORY_LIMIT)
        # both turns are stored only once the model has replied
        reply = contact_chat_reply(contact, history, data.message)
        user_msg = chat_repo.add_contact_message(db, contact.id, "user", data.message)
        assistant_msg = chat_repo.add_contact_message(db, contact.id, "assistant", reply)
        return {
            "messages": [
                ChatMessageOut.model_validate(user_msg),
                ChatMessageOut.model_validate(assistant_msg),
            ]
        }
    except LLMDisabledError:
        raise
    except Exception as e:
        logger.exception("Chat failed for contact=%s: %s", contact.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send message") from e
