"""CRM domain exceptions."""

from enum import Enum


class ConflictField(str, Enum):
    """Which unique field a store conflict was raised for."""

    EMAIL = "email"
    PHONE = "phone"
    UNKNOWN = "unknown"


CONFLICT_MESSAGES: dict[ConflictField, str] = {
    ConflictField.EMAIL: "Email address already exists",
    ConflictField.PHONE: "Phone number already exists",
    ConflictField.UNKNOWN: "Client with this information already exists",
}


class CRMError(Exception):
    """Base class for errors surfaced to CRM users."""


class ClientNotFoundError(CRMError):
    """Raised when a client id does not exist in the store."""

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__("Client not found")


class ClientConflictError(CRMError):
    """Raised when a create/update violates a unique email or phone."""

    def __init__(self, field: ConflictField):
        self.field = field
        self.message = CONFLICT_MESSAGES[field]
        super().__init__(self.message)


class ValidationFailedError(CRMError):
    """Raised when local validation rejects a payload before any I/O."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class CollaboratorError(CRMError):
    """Raised when an external collaborator call fails."""

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"{source}: {detail}")


class DispatchError(CollaboratorError):
    """Raised when the webhook dispatcher rejects a terminal action."""

    def __init__(self, detail: str):
        super().__init__("dispatcher", detail)


class SubmissionInProgressError(CRMError):
    """Raised when the same mutating action is already in flight."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"A {action.replace('_', ' ')} request is already in progress")
