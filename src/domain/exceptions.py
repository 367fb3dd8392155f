"""
Domain exceptions - Semantic error types for member registration.

This module defines domain-specific exceptions that communicate
business rule violations and infrastructure failures without leaking
driver or transport details to the caller.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(RegistrationError):
    """A required member field is missing or malformed."""

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"Missing or invalid field: {field}")
        self.field = field


class DuplicateKey(RegistrationError):
    """Email or member identifier already exists in storage."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"A member with this {field} already exists")
        self.field = field
        self.value = value


class Unavailable(RegistrationError):
    """Storage or mail transport could not be reached."""

    def __init__(self, resource: str, message: str) -> None:
        super().__init__(message)
        self.resource = resource


class NotificationError(RegistrationError):
    """Mail send was rejected or timed out."""

    def __init__(self, message: str, recipient: str | None = None) -> None:
        super().__init__(message)
        self.recipient = recipient


class PartialRegistration(RegistrationError):
    """
    Member was persisted but a later notification step failed.

    The record exists in storage even though the registration is reported
    as failed; member_id lets the caller reconcile.
    """

    def __init__(self, member_id: str, step: str, cause: Exception) -> None:
        super().__init__(str(cause))
        self.member_id = member_id
        self.step = step
        self.cause = cause
