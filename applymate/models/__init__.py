from applymate.models.user import User
from applymate.models.resume import Resume
from applymate.models.job_application import JobApplication
from applymate.models.job_resume_used import JobResumeUsed
from applymate.models.resume_suggestion import ResumeSuggestion
from applymate.models.chat_message import ChatMessage
from applymate.models.contact import Contact
from applymate.models.contact_interaction import ContactInteraction
from applymate.models.contact_reminder import ContactReminder
from applymate.models.contact_chat_message import ContactChatMessage

__all__ = [
    "User",
    "Resume",
    "JobApplication",
    "JobResumeUsed",
    "ResumeSuggestion",
    "ChatMessage",
    "Contact",
    "ContactInteraction",
    "ContactReminder",
    "ContactChatMessage",
]
