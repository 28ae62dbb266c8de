"""Factories for the notes the CRM appends to client records."""

from filali_crm.crm.models import (
    MANUAL_AUTHOR,
    SYSTEM_AUTHOR,
    ContactAction,
    FieldChange,
    Note,
    NoteType,
)

CLIENT_CREATED_BODY = "Client profile created"
CLIENT_UPDATED_BODY = "Client information updated"


def creation_note() -> Note:
    """Seed note written when a client is created."""
    return Note(body=CLIENT_CREATED_BODY, type=NoteType.ACTIVITY, author=SYSTEM_AUTHOR)


def update_note(changes: list[FieldChange]) -> Note:
    """Activity note carrying the full change list of one update."""
    return Note(
        body=CLIENT_UPDATED_BODY,
        type=NoteType.ACTIVITY,
        author=SYSTEM_AUTHOR,
        changes=list(changes),
    )


def manual_note(body: str, author: str = MANUAL_AUTHOR) -> Note:
    """User-authored note, stored verbatim."""
    return Note(body=body, type=NoteType.MANUAL, author=author)


def contact_body(
    action: ContactAction,
    phone: str | None = None,
    email: str | None = None,
    message: str | None = None,
) -> str:
    """Render the fixed body logged for a contact action."""
    if action is ContactAction.CALL:
        return f"Phone call initiated to {phone}"
    if action is ContactAction.TEXT:
        if message:
            return f'SMS sent to {phone}: "{message}"'
        return f"SMS sent to {phone}"
    if action is ContactAction.FACETIME:
        return f"FaceTime call initiated to {phone}"
    return f"Email sent to {email}"


def contact_note(
    action: ContactAction,
    phone: str | None = None,
    email: str | None = None,
    message: str | None = None,
) -> Note:
    """Activity note recording a call, text, FaceTime, or email."""
    return Note(
        body=contact_body(action, phone=phone, email=email, message=message),
        type=NoteType.ACTIVITY,
        author=SYSTEM_AUTHOR,
    )
