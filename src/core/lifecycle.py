"""
Record lifecycle step run between validation and first insert.
"""

from .schema import CONTACT_PLACEHOLDER_SUBJECT
from .validation import RecordVariant


def compose_contact_content(subject, message) -> str:
    """Body stored for a contact form submission."""
    return f"Contact Form: {subject or CONTACT_PLACEHOLDER_SUBJECT}\n\n{message}"


def prepare_for_insert(record: RecordVariant) -> RecordVariant:
    """Derive computed fields on a freshly validated record.

    CONTACT records get their content composed from subject and message,
    replacing whatever content the caller sent. Other kinds pass through.
    Returns a new value; the input is left untouched.
    """
    if record.type == 'CONTACT':
        return record.model_copy(update={
            'content': compose_contact_content(record.subject, record.message)
        })
    return record
