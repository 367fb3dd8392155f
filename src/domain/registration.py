"""
Registration domain service - member registration workflow.

This module contains the core business logic for member registration:
identifier assignment, persistence and the two-step notification sequence.

Registration Workflow (linear, no step is repeated)
===================================================

    RECEIVED -> IDENTIFIER_ASSIGNED -> PERSISTED -> APPLICANT_NOTIFIED
             -> ADMIN_NOTIFIED -> COMPLETED

FAILED is terminal and reachable from any step.

Delivery modes:
- inline: notifications are sent within the request. A notification failure
  fails the registration even though the member is already stored; the
  raised PartialRegistration carries the member_id so the inconsistency is
  visible. No compensating rollback is performed.
- outbox: notification intents are stored in the same transaction as the
  member, and persistence is the success boundary. A NotificationRelay
  delivers them later with retries.

Identifier collisions are resolved by regenerating the identifier a bounded
number of times; email collisions fail immediately.
"""

import logging
from dataclasses import dataclass, field, replace

from .exceptions import (
    DuplicateKey,
    NotificationError,
    PartialRegistration,
    RegistrationError,
    ValidationError,
)
from .identifiers import IdentifierGenerator
from .models import (
    REQUIRED_FIELDS,
    MemberRecord,
    NotificationKind,
    RegistrationOutcome,
    RegistrationStep,
    StoredMember,
)
from .notifications import NotificationDispatcher
from .ports import MemberStore

logger = logging.getLogger(__name__)

INLINE = "inline"
OUTBOX = "outbox"


@dataclass
class RegistrationWorkflow:
    """
    Domain service for member registration.

    Orchestrates validation, identifier generation, persistence and
    notification dispatch.
    """

    store: MemberStore
    dispatcher: NotificationDispatcher
    generator: IdentifierGenerator = field(default_factory=IdentifierGenerator)
    notification_mode: str = INLINE
    id_max_attempts: int = 5

    def register(self, record: MemberRecord) -> RegistrationOutcome:
        """
        Register a new member.

        Args:
            record: Applicant data (email will be normalized)

        Returns:
            RegistrationOutcome with the assigned member identifier

        Raises:
            ValidationError: A required field is missing or blank
            DuplicateKey: Email already registered, or identifier collisions
                exhausted the retry budget
            Unavailable: Storage could not be reached
            PartialRegistration: Member stored but a notification failed
        """
        step = RegistrationStep.RECEIVED
        try:
            record = self._normalize(record)
            self._validate(record)
            step = RegistrationStep.IDENTIFIER_ASSIGNED
            member = self._persist(record)
        except RegistrationError as e:
            logger.warning("Registration failed at step %s: %s", step.value, e)
            raise

        if self.notification_mode == OUTBOX:
            logger.info("Member %s registered, notifications queued", member.member_id)
            return RegistrationOutcome(
                member_id=member.member_id,
                step=RegistrationStep.PERSISTED,
                notifications_queued=(NotificationKind.APPLICANT, NotificationKind.ADMIN),
            )

        step = RegistrationStep.PERSISTED
        try:
            self.dispatcher.notify_applicant(member)
            step = RegistrationStep.APPLICANT_NOTIFIED
            self.dispatcher.notify_admin(member)
            step = RegistrationStep.ADMIN_NOTIFIED
        except NotificationError as e:
            logger.error(
                "Member %s stored but notification failed after step %s: %s",
                member.member_id,
                step.value,
                e,
            )
            raise PartialRegistration(member.member_id, step.value, e) from e

        logger.info("Member %s registered", member.member_id)
        return RegistrationOutcome(member_id=member.member_id, step=RegistrationStep.COMPLETED)

    def lookup(self, member_id: str) -> StoredMember | None:
        """Find a member by identifier; None if it was never issued."""
        return self.store.find_by_member_id(member_id.strip())

    def _persist(self, record: MemberRecord) -> StoredMember:
        """Assign an identifier and store the member, regenerating on id collisions."""
        notifications = ()
        if self.notification_mode == OUTBOX:
            notifications = (NotificationKind.APPLICANT, NotificationKind.ADMIN)

        attempt = 1
        while True:
            member_id = self.generator.generate()
            try:
                return self.store.create(record, member_id, notifications)
            except DuplicateKey as e:
                if e.field != "member_id" or attempt >= self.id_max_attempts:
                    raise
                logger.info("Member identifier %s already issued, regenerating", member_id)
                attempt += 1

    def _normalize(self, record: MemberRecord) -> MemberRecord:
        """
        Normalize text fields for consistent storage and lookup.

        Email: strip whitespace + lowercase. Other text: strip whitespace.
        """
        return replace(
            record,
            full_name=_strip(record.full_name),
            email=_strip(record.email).lower() if isinstance(record.email, str) else record.email,
            phone=_strip(record.phone),
            address=_strip(record.address),
            membership_type=_strip(record.membership_type),
            skills=_strip(record.skills) or None,
            interests=tuple(i.strip() for i in record.interests if i and i.strip()),
        )

    def _validate(self, record: MemberRecord) -> None:
        for name in REQUIRED_FIELDS:
            value = getattr(record, name)
            if value is None or (isinstance(value, str) and not value):
                raise ValidationError(name)
        if "@" not in record.email:
            raise ValidationError("email", "Email address is malformed")


def _strip(value):
    return value.strip() if isinstance(value, str) else value
