"""
In-memory repository adapter - Implements MemberStore and NotificationOutbox.

Process-local storage for development and tests. A single lock makes
create() atomic, standing in for the database's uniqueness constraints.
"""

import itertools
import threading
import time
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone

from src.domain.exceptions import DuplicateKey
from src.domain.models import MemberRecord, NotificationKind, OutboxEntry, StoredMember


class InMemoryMemberStore:
    """
    Implements MemberStore and NotificationOutbox protocols in memory.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._members: dict[str, StoredMember] = {}
        self._emails: set[str] = set()
        self._issued: set[str] = set()
        self._outbox: dict[int, OutboxEntry] = {}
        self._delivered: set[int] = set()
        self._claims: dict[int, float] = {}
        self._ids = itertools.count(1)

    def create(
        self,
        record: MemberRecord,
        member_id: str,
        notifications: Sequence[NotificationKind] = (),
    ) -> StoredMember:
        with self._lock:
            if record.email in self._emails:
                raise DuplicateKey("email", record.email)
            if member_id in self._issued:
                raise DuplicateKey("member_id", member_id)

            member = StoredMember.from_record(record, member_id, datetime.now(timezone.utc))
            self._issued.add(member_id)
            self._emails.add(record.email)
            self._members[member_id] = member
            for kind in notifications:
                entry_id = next(self._ids)
                self._outbox[entry_id] = OutboxEntry(
                    id=entry_id, member_id=member_id, kind=NotificationKind(kind)
                )
            return member

    def find_by_member_id(self, member_id: str) -> StoredMember | None:
        with self._lock:
            return self._members.get(member_id)

    def pending(self, limit: int, max_attempts: int) -> list[OutboxEntry]:
        with self._lock:
            return self._deliverable(max_attempts, time.monotonic(), include_claimed=True)[:limit]

    def claim(self, limit: int, max_attempts: int, lease_seconds: float) -> list[OutboxEntry]:
        with self._lock:
            now = time.monotonic()
            entries = self._deliverable(max_attempts, now, include_claimed=False)[:limit]
            for entry in entries:
                self._claims[entry.id] = now + lease_seconds
            return entries

    def mark_delivered(self, entry_id: int) -> None:
        with self._lock:
            self._delivered.add(entry_id)
            self._claims.pop(entry_id, None)

    def mark_failed(self, entry_id: int, error: str) -> None:
        with self._lock:
            entry = self._outbox[entry_id]
            self._outbox[entry_id] = replace(entry, attempts=entry.attempts + 1, last_error=error)
            self._claims.pop(entry_id, None)

    def _deliverable(self, max_attempts: int, now: float, include_claimed: bool) -> list[OutboxEntry]:
        # Caller holds the lock.
        return [
            entry
            for entry_id, entry in sorted(self._outbox.items())
            if entry_id not in self._delivered
            and entry.attempts < max_attempts
            and (include_claimed or self._claims.get(entry_id, 0.0) <= now)
        ]
