"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Sequence
from typing import Protocol

from .models import MemberRecord, NotificationKind, OutboxEntry, StoredMember


class MemberStore(Protocol):
    """Port interface for member persistence."""

    def create(
        self,
        record: MemberRecord,
        member_id: str,
        notifications: Sequence[NotificationKind] = (),
    ) -> StoredMember:
        """
        Atomically persist a new member.

        Uniqueness of email and member_id must be enforced by the storage
        engine so that concurrent writers cannot both succeed.

        Args:
            record: Applicant data (email already normalized)
            member_id: Generated member identifier
            notifications: Notification intents to enqueue in the same
                transaction (outbox delivery mode)

        Returns:
            The stored member including its registration timestamp

        Raises:
            DuplicateKey: email or member_id already exists
            ValidationError: a required field is absent or malformed
            Unavailable: storage cannot be reached or timed out
        """
        ...

    def find_by_member_id(self, member_id: str) -> StoredMember | None:
        """
        Look up a member by identifier.

        Returns:
            The stored member, or None if no record matches

        Raises:
            Unavailable: storage cannot be reached or timed out
        """
        ...


class NotificationOutbox(Protocol):
    """Port interface for queued notification intents."""

    def pending(self, limit: int, max_attempts: int) -> list[OutboxEntry]:
        """Return undelivered entries with fewer than max_attempts tries, oldest first."""
        ...

    def claim(self, limit: int, max_attempts: int, lease_seconds: float) -> list[OutboxEntry]:
        """
        Atomically lease pending entries for delivery, oldest first.

        A leased entry is not handed to another caller until the lease
        expires or the entry is marked delivered or failed.
        """
        ...

    def mark_delivered(self, entry_id: int) -> None:
        ...

    def mark_failed(self, entry_id: int, error: str) -> None:
        """Record a failed delivery attempt and release the lease."""
        ...


class Mailer(Protocol):
    """Port interface for email delivery."""

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        """
        Deliver one email message.

        Raises:
            Unavailable: mail transport cannot be reached
            NotificationError: message rejected or send timed out
        """
        ...
