"""
Domain models - Member records and registration results.

Plain dataclasses shared by the domain services and the adapters.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum


class RegistrationStep(str, Enum):
    """
    Registration workflow states.

    Linear, no retries of completed steps:
        RECEIVED -> IDENTIFIER_ASSIGNED -> PERSISTED -> APPLICANT_NOTIFIED
        -> ADMIN_NOTIFIED -> COMPLETED

    FAILED is terminal and reachable from any step.
    """

    RECEIVED = "received"
    IDENTIFIER_ASSIGNED = "identifier_assigned"
    PERSISTED = "persisted"
    APPLICANT_NOTIFIED = "applicant_notified"
    ADMIN_NOTIFIED = "admin_notified"
    COMPLETED = "completed"
    FAILED = "failed"


class NotificationKind(str, Enum):
    """Recipients of the two registration notifications."""

    APPLICANT = "applicant"
    ADMIN = "admin"


REQUIRED_FIELDS = (
    "full_name",
    "email",
    "phone",
    "address",
    "date_of_birth",
    "membership_type",
)


@dataclass(frozen=True)
class MemberRecord:
    """Applicant data submitted for registration."""

    full_name: str
    email: str
    phone: str
    address: str
    date_of_birth: date
    membership_type: str
    skills: str | None = None
    interests: tuple[str, ...] = ()


@dataclass(frozen=True)
class StoredMember(MemberRecord):
    """Persisted member with its assigned identifier and timestamp."""

    member_id: str = ""
    registered_at: datetime | None = None

    @classmethod
    def from_record(
        cls, record: MemberRecord, member_id: str, registered_at: datetime
    ) -> "StoredMember":
        values = {f.name: getattr(record, f.name) for f in fields(MemberRecord)}
        return cls(**values, member_id=member_id, registered_at=registered_at)


@dataclass(frozen=True)
class RegistrationOutcome:
    """Result of a successful registration."""

    member_id: str
    step: RegistrationStep
    notifications_queued: tuple[NotificationKind, ...] = field(default_factory=tuple)
    success: bool = True


@dataclass(frozen=True)
class OutboxEntry:
    """Queued notification intent awaiting delivery."""

    id: int
    member_id: str
    kind: NotificationKind
    attempts: int = 0
    last_error: str | None = None
