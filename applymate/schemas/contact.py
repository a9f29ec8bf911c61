from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from applymate.schemas.base import CamelModel, as_utc, blank_to_none, check_http_url


class ContactCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    company: str | None = Field(default=None, max_length=200)
    role: str | None = Field(default=None, max_length=200)
    linked_in_url: str | None = None
    email: EmailStr | None = None
    notes: str | None = None
    status: str | None = Field(default=None, max_length=50)

    @field_validator("company", "role", "linked_in_url", "email", "notes", "status", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)

    @field_validator("linked_in_url")
    @classmethod
    def valid_url(cls, v: str | None) -> str | None:
        return check_http_url(v)


class ContactUpdate(ContactCreate):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    last_contacted_at: datetime | None = None

    @field_validator("last_contacted_at")
    @classmethod
    def utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class InteractionCreate(CamelModel):
    type: str = Field(min_length=1, max_length=50)
    notes: str | None = None


class ReminderCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    due_date: datetime

    @field_validator("due_date")
    @classmethod
    def utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class ReminderUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    due_date: datetime | None = None
    completed: bool | None = None

    @field_validator("due_date")
    @classmethod
    def utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class InteractionOut(CamelModel):
    id: str
    contact_id: str
    type: str
    notes: str | None = None
    created_at: datetime | None = None


class ReminderOut(CamelModel):
    id: str
    contact_id: str
    title: str
    description: str | None = None
    due_date: datetime
    completed: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ContactOut(CamelModel):
    id: str
    name: str
    company: str | None = None
    role: str | None = None
    linked_in_url: str | None = None
    email: str | None = None
    notes: str | None = None
    status: str
    last_contacted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ContactListItem(ContactOut):
    last_interaction: InteractionOut | None = None
    next_reminder: ReminderOut | None = None


class ContactDetail(ContactOut):
    interactions: list[InteractionOut] = []
    reminders: list[ReminderOut] = []


class ContactSummary(CamelModel):
    id: str
    name: str
    company: str | None = None
    role: str | None = None


class UpcomingReminderOut(ReminderOut):
    contact: ContactSummary
