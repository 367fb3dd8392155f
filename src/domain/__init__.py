"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for the membership
registration service. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .exceptions import (
    DuplicateKey,
    NotificationError,
    PartialRegistration,
    RegistrationError,
    Unavailable,
    ValidationError,
)
from .identifiers import MEMBER_ID_PATTERN, IdentifierGenerator
from .models import (
    MemberRecord,
    NotificationKind,
    OutboxEntry,
    RegistrationOutcome,
    RegistrationStep,
    StoredMember,
)
from .notifications import NotificationDispatcher, NotificationRelay
from .ports import Mailer, MemberStore, NotificationOutbox
from .registration import RegistrationWorkflow

__all__ = [
    "DuplicateKey",
    "IdentifierGenerator",
    "MEMBER_ID_PATTERN",
    "Mailer",
    "MemberRecord",
    "MemberStore",
    "NotificationDispatcher",
    "NotificationError",
    "NotificationKind",
    "NotificationOutbox",
    "NotificationRelay",
    "OutboxEntry",
    "PartialRegistration",
    "RegistrationError",
    "RegistrationOutcome",
    "RegistrationStep",
    "RegistrationWorkflow",
    "StoredMember",
    "Unavailable",
    "ValidationError",
]
