import logging
from typing import Iterable

from applymate.services.llm_client import generate_reply

logger = logging.getLogger(__name__)

MAX_CONTEXT_CHARS = 8000
# prior turns sent to the model with each new message
CHAT_HISTORY_LIMIT = 10


def _history_block(messages: Iterable) -> str:
    lines = [f"{'User' if m.role == 'user' else 'Assistant'}: {m.message}" for m in messages]
    if not lines:
        return ""
    return "Previous conversation:\n" + "\n".join(lines) + "\n"


def build_job_chat_prompt(job, resume_text: str | None, history: Iterable, message: str) -> str:
    """Prompt for the per-job career assistant: job, attached resume and prior turns."""
    conversation = _history_block(history)
    return f"""You are a career assistant helping a candidate with one specific job application.
Help with resume tailoring, cover letters, interview preparation and application strategy.
Be specific to this job and this resume. Be concise and actionable.

Job:
Company: {job.company}
Role: {job.role}
Location: {job.location or "Not specified"}
Status: {job.status}

Job Description:
{(job.job_description or "Not provided")[:MAX_CONTEXT_CHARS]}

Candidate Resume:
{(resume_text or "No resume attached")[:MAX_CONTEXT_CHARS]}

{conversation}
User: {message}

Assistant:"""


def build_contact_chat_prompt(contact, history: Iterable, message: str) -> str:
    """Prompt for the networking-outreach assistant."""
    last_contacted = contact.last_contacted_at.isoformat() if contact.last_contacted_at else "Never"
    conversation = _history_block(history)
    return f"""You are an AI assistant helping with networking outreach. The user is asking for help
crafting messages to reach out to contacts during their job search.

Contact Information:
Contact Name: {contact.name}
Company: {contact.company or "Unknown"}
Role: {contact.role or "Unknown"}
LinkedIn: {contact.linked_in_url or "Not provided"}
Email: {contact.email or "Not provided"}
Notes: {contact.notes or "None"}
Status: {contact.status}
Last Contacted: {last_contacted}

{conversation}
Provide helpful, personalized, and professional advice for networking outreach.
Keep responses concise and actionable.

User: {message}

Assistant:"""


def job_chat_reply(job, resume_text: str | None, history: Iterable, message: str) -> str:
    return generate_reply(build_job_chat_prompt(job, resume_text, history, message))


def contact_chat_reply(contact, history: Iterable, message: str) -> str:
    return generate_reply(build_contact_chat_prompt(contact, history, message))
