"""
Unit tests for RegistrationWorkflow domain logic.

Tests domain logic with mocked and in-memory ports to verify:
- Email normalization and presence validation
- Identifier assignment and collision retry
- Notification ordering
- Failure reporting, including failures after persistence
- Outbox delivery mode
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import pytest

from src.domain.exceptions import (
    DuplicateKey,
    NotificationError,
    PartialRegistration,
    Unavailable,
    ValidationError,
)
from src.domain.identifiers import MEMBER_ID_PATTERN
from src.domain.models import NotificationKind, RegistrationStep, StoredMember
from src.domain.notifications import NotificationDispatcher
from src.domain.registration import OUTBOX, RegistrationWorkflow


def stored(record, member_id: str = "COM-123456-001") -> StoredMember:
    return StoredMember.from_record(record, member_id, datetime(2025, 1, 5, tzinfo=timezone.utc))


@pytest.fixture
def dispatcher(mailer) -> NotificationDispatcher:
    return NotificationDispatcher(mailer=mailer, admin_email="admin@example.com")


@pytest.fixture
def workflow(store, dispatcher) -> RegistrationWorkflow:
    return RegistrationWorkflow(store=store, dispatcher=dispatcher)


class TestSuccessfulRegistration:
    """Tests for the happy path."""

    def test_returns_member_id_matching_pattern(self, workflow, jane_record) -> None:
        """Registration returns a COM-dddddd-ddd identifier."""
        outcome = workflow.register(jane_record)

        assert outcome.success is True
        assert outcome.step == RegistrationStep.COMPLETED
        assert MEMBER_ID_PATTERN.match(outcome.member_id)

    def test_member_is_retrievable(self, workflow, jane_record) -> None:
        """Registered member can be looked up by identifier."""
        outcome = workflow.register(jane_record)

        member = workflow.lookup(outcome.member_id)
        assert member is not None
        assert member.full_name == "Jane Doe"
        assert member.email == "jane@example.com"
        assert member.registered_at is not None

    def test_sends_applicant_then_admin(self, workflow, jane_record, mailer) -> None:
        """Applicant confirmation is sent before the admin alert."""
        workflow.register(jane_record)

        assert [m["to"] for m in mailer.sent] == ["jane@example.com", "admin@example.com"]

    def test_notifications_after_persistence(self, jane_record) -> None:
        """No notification is sent before the store accepted the member."""
        manager = Mock()
        manager.store.create.return_value = stored(jane_record)
        workflow = RegistrationWorkflow(store=manager.store, dispatcher=manager.dispatcher)

        workflow.register(jane_record)

        names = [c[0] for c in manager.mock_calls]
        assert names == ["store.create", "dispatcher.notify_applicant", "dispatcher.notify_admin"]


class TestNormalization:
    """Tests for input normalization."""

    def test_email_is_lowercased_and_stripped(self, jane_record) -> None:
        """Email is stored as strip + lowercase."""
        store = Mock()
        store.create.return_value = stored(jane_record)
        workflow = RegistrationWorkflow(store=store, dispatcher=Mock())

        workflow.register(replace(jane_record, email="  Jane@Example.COM "))

        record = store.create.call_args[0][0]
        assert record.email == "jane@example.com"

    def test_blank_interests_dropped(self, jane_record) -> None:
        """Blank interest entries are removed."""
        store = Mock()
        store.create.return_value = stored(jane_record)
        workflow = RegistrationWorkflow(store=store, dispatcher=Mock())

        workflow.register(replace(jane_record, interests=("organizing", " ", "reading ")))

        record = store.create.call_args[0][0]
        assert record.interests == ("organizing", "reading")

    def test_blank_skills_become_none(self, jane_record) -> None:
        store = Mock()
        store.create.return_value = stored(jane_record)
        workflow = RegistrationWorkflow(store=store, dispatcher=Mock())

        workflow.register(replace(jane_record, skills="   "))

        assert store.create.call_args[0][0].skills is None


class TestValidation:
    """Tests for required-field validation."""

    @pytest.mark.parametrize(
        "field", ["full_name", "email", "phone", "address", "membership_type"]
    )
    def test_blank_required_field_rejected(self, jane_record, field) -> None:
        """Blank required text fields raise ValidationError before storage."""
        store = Mock()
        workflow = RegistrationWorkflow(store=store, dispatcher=Mock())

        with pytest.raises(ValidationError) as exc_info:
            workflow.register(replace(jane_record, **{field: "  "}))

        assert exc_info.value.field == field
        store.create.assert_not_called()

    def test_missing_date_of_birth_rejected(self, jane_record) -> None:
        store = Mock()
        workflow = RegistrationWorkflow(store=store, dispatcher=Mock())

        with pytest.raises(ValidationError) as exc_info:
            workflow.register(replace(jane_record, date_of_birth=None))

        assert exc_info.value.field == "date_of_birth"

    def test_email_without_at_sign_rejected(self, jane_record) -> None:
        workflow = RegistrationWorkflow(store=Mock(), dispatcher=Mock())

        with pytest.raises(ValidationError):
            workflow.register(replace(jane_record, email="not-an-email"))


class TestDuplicates:
    """Tests for uniqueness handling."""

    def test_duplicate_email_rejected(self, workflow, jane_record, store) -> None:
        """Second registration with the same email fails with DuplicateKey."""
        first = workflow.register(jane_record)

        with pytest.raises(DuplicateKey) as exc_info:
            workflow.register(replace(jane_record, full_name="Jane Again"))

        assert exc_info.value.field == "email"
        assert store.find_by_member_id(first.member_id).full_name == "Jane Doe"

    def test_duplicate_email_is_case_insensitive(self, workflow, jane_record) -> None:
        """Emails differing only in case collide."""
        workflow.register(jane_record)

        with pytest.raises(DuplicateKey):
            workflow.register(replace(jane_record, email="JANE@example.com"))

    def test_duplicate_email_sends_no_notifications(self, workflow, jane_record, mailer) -> None:
        workflow.register(jane_record)
        mailer.sent.clear()

        with pytest.raises(DuplicateKey):
            workflow.register(jane_record)

        assert mailer.sent == []

    def test_email_duplicate_not_retried(self, jane_record) -> None:
        """Email collisions fail immediately without regenerating the id."""
        store = Mock()
        store.create.side_effect = DuplicateKey("email", "jane@example.com")
        workflow = RegistrationWorkflow(store=store, dispatcher=Mock())

        with pytest.raises(DuplicateKey):
            workflow.register(jane_record)

        assert store.create.call_count == 1


class TestIdentifierCollisionRetry:
    """Tests for bounded regeneration on identifier collisions."""

    def test_regenerates_on_member_id_collision(self, jane_record) -> None:
        """A colliding identifier is replaced with a fresh one."""
        generator = Mock()
        generator.generate.side_effect = ["COM-000001-001", "COM-000001-002"]
        store = Mock()
        store.create.side_effect = [
            DuplicateKey("member_id", "COM-000001-001"),
            stored(jane_record, "COM-000001-002"),
        ]
        workflow = RegistrationWorkflow(store=store, dispatcher=Mock(), generator=generator)

        outcome = workflow.register(jane_record)

        assert outcome.member_id == "COM-000001-002"
        assert [c[0][1] for c in store.create.call_args_list] == [
            "COM-000001-001",
            "COM-000001-002",
        ]

    def test_gives_up_after_max_attempts(self, jane_record) -> None:
        """Collisions beyond id_max_attempts surface as DuplicateKey."""
        generator = Mock()
        generator.generate.return_value = "COM-000001-001"
        store = Mock()
        store.create.side_effect = DuplicateKey("member_id", "COM-000001-001")
        workflow = RegistrationWorkflow(
            store=store, dispatcher=Mock(), generator=generator, id_max_attempts=3
        )

        with pytest.raises(DuplicateKey) as exc_info:
            workflow.register(jane_record)

        assert exc_info.value.field == "member_id"
        assert store.create.call_count == 3


class TestFailureAfterPersistence:
    """Tests for notification failures once the member is stored."""

    def test_applicant_transport_unreachable(self, workflow, jane_record, mailer, store) -> None:
        """Member stays stored; registration is reported as failed."""
        mailer.fail_for("jane@example.com", Unavailable("mail", "Connection refused"))

        with pytest.raises(PartialRegistration) as exc_info:
            workflow.register(jane_record)

        error = exc_info.value
        assert error.step == RegistrationStep.PERSISTED.value
        assert "Connection refused" in error.message
        assert store.find_by_member_id(error.member_id) is not None
        assert mailer.sent == []

    def test_admin_failure_after_applicant_sent(self, workflow, jane_record, mailer) -> None:
        """Admin failure is reported after the applicant was notified."""
        mailer.fail_for("admin@example.com", NotificationError("550 mailbox unavailable"))

        with pytest.raises(PartialRegistration) as exc_info:
            workflow.register(jane_record)

        assert exc_info.value.step == RegistrationStep.APPLICANT_NOTIFIED.value
        assert isinstance(exc_info.value.cause, NotificationError)
        assert exc_info.value.cause.recipient == "admin"
        assert [m["to"] for m in mailer.sent] == ["jane@example.com"]

    def test_storage_unavailable_propagates(self, jane_record) -> None:
        store = Mock()
        store.create.side_effect = Unavailable("storage", "connection refused")
        dispatcher = Mock()
        workflow = RegistrationWorkflow(store=store, dispatcher=dispatcher)

        with pytest.raises(Unavailable):
            workflow.register(jane_record)

        dispatcher.notify_applicant.assert_not_called()


class TestOutboxMode:
    """Tests for queued notification delivery."""

    def test_success_without_sending(self, store, dispatcher, jane_record, mailer) -> None:
        """Registration succeeds at persistence; no mail is sent inline."""
        workflow = RegistrationWorkflow(store=store, dispatcher=dispatcher, notification_mode=OUTBOX)

        outcome = workflow.register(jane_record)

        assert outcome.step == RegistrationStep.PERSISTED
        assert outcome.notifications_queued == (NotificationKind.APPLICANT, NotificationKind.ADMIN)
        assert mailer.sent == []

    def test_intents_stored_with_member(self, store, dispatcher, jane_record) -> None:
        workflow = RegistrationWorkflow(store=store, dispatcher=dispatcher, notification_mode=OUTBOX)

        outcome = workflow.register(jane_record)

        entries = store.pending(limit=10, max_attempts=5)
        assert [(e.member_id, e.kind) for e in entries] == [
            (outcome.member_id, NotificationKind.APPLICANT),
            (outcome.member_id, NotificationKind.ADMIN),
        ]

    def test_mail_failure_does_not_fail_registration(self, store, dispatcher, jane_record, mailer) -> None:
        mailer.fail_for("jane@example.com", Unavailable("mail", "down"))
        workflow = RegistrationWorkflow(store=store, dispatcher=dispatcher, notification_mode=OUTBOX)

        outcome = workflow.register(jane_record)

        assert outcome.success is True


class TestLookup:
    """Tests for member lookup."""

    def test_unknown_identifier_returns_none(self, workflow) -> None:
        """Lookup of a never-issued identifier is empty, not an error."""
        assert workflow.lookup("COM-000000-000") is None


class TestConcurrentRegistration:
    """Tests for concurrent registrations of the same email."""

    def test_exactly_one_succeeds(self, workflow, jane_record, store) -> None:
        """Concurrent registrations with one email: one success, the rest DuplicateKey."""
        results: list[object] = []
        results_lock = threading.Lock()
        barrier = threading.Barrier(5)

        def attempt() -> None:
            barrier.wait()
            try:
                outcome = workflow.register(jane_record)
                result: object = outcome.member_id
            except DuplicateKey as e:
                result = e
            with results_lock:
                results.append(result)

        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(attempt) for _ in range(5)]
            for f in futures:
                f.result()

        successes = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if isinstance(r, DuplicateKey)]
        assert len(successes) == 1
        assert len(failures) == 4
        assert store.find_by_member_id(successes[0]) is not None


def test_register_logs_failure_step(jane_record, caplog: pytest.LogCaptureFixture) -> None:
    """Failures are logged with the step at which they happened."""
    store = MagicMock()
    store.create.side_effect = Unavailable("storage", "timeout")
    workflow = RegistrationWorkflow(store=store, dispatcher=Mock())

    with caplog.at_level("WARNING"), pytest.raises(Unavailable):
        workflow.register(jane_record)

    assert "identifier_assigned" in caplog.text
