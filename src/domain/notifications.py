"""
Registration notifications - applicant confirmation and admin alert.

NotificationDispatcher composes and sends the two emails for a stored
member. NotificationRelay delivers queued intents from the outbox with
bounded retries when notifications are decoupled from the request.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape

from .exceptions import NotificationError, Unavailable
from .models import NotificationKind, StoredMember
from .ports import Mailer, MemberStore, NotificationOutbox

logger = logging.getLogger(__name__)

_APPLICANT_HTML = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #ddd; border-radius: 5px;">
  <h2 style="color: #d32f2f; text-align: center;">{org} Membership Confirmation</h2>
  <p>Dear {name},</p>
  <p>Thank you for joining the {org}. Your registration has been successfully processed.</p>
  <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">
    <h3 style="margin-top: 0;">Membership Details:</h3>
    <p><strong>Member ID:</strong> {member_id}</p>
    <p><strong>Membership Type:</strong> {membership_type}</p>
    <p><strong>Registration Date:</strong> {registered}</p>
  </div>
  <p>Please save this email for your records. You can access your member profile using your email and member ID.</p>
  <p>If you have any questions, please contact our support team.</p>
  <p>In solidarity,<br>{org} Team</p>
</div>
"""

_APPLICANT_TEXT = """\
Dear {name},

Thank you for joining the {org}. Your registration has been successfully processed.

Member ID: {member_id}
Membership Type: {membership_type}
Registration Date: {registered}

Please save this email for your records.

In solidarity,
{org} Team
"""

_ADMIN_HTML = """\
<h3>New Member Registration</h3>
<p><strong>Name:</strong> {name}</p>
<p><strong>Email:</strong> {email}</p>
<p><strong>Member ID:</strong> {member_id}</p>
<p><strong>Membership Type:</strong> {membership_type}</p>
<p><strong>Registration Date:</strong> {registered}</p>
"""

_ADMIN_TEXT = """\
New Member Registration

Name: {name}
Email: {email}
Member ID: {member_id}
Membership Type: {membership_type}
Registration Date: {registered}
"""


def format_registration_date(registered_at: datetime | None) -> str:
    """Render the registration date as e.g. 'January 05, 2025'."""
    moment = registered_at or datetime.now(timezone.utc)
    return moment.strftime("%B %d, %Y")


@dataclass
class NotificationDispatcher:
    """
    Sends the applicant confirmation and the admin alert.

    Each send is independent. Failures are re-raised tagged with the
    recipient kind so callers can tell the two apart.
    """

    mailer: Mailer
    admin_email: str
    organization_name: str = "Comrade Organization"

    def notify_applicant(self, member: StoredMember) -> None:
        context = self._context(member, escape_html=False)
        html_context = self._context(member, escape_html=True)
        self._send(
            NotificationKind.APPLICANT,
            to=member.email,
            subject=f"Welcome to {self.organization_name}",
            html=_APPLICANT_HTML.format(**html_context),
            text=_APPLICANT_TEXT.format(**context),
        )

    def notify_admin(self, member: StoredMember) -> None:
        context = self._context(member, escape_html=False)
        html_context = self._context(member, escape_html=True)
        self._send(
            NotificationKind.ADMIN,
            to=self.admin_email,
            subject="New Member Registration",
            html=_ADMIN_HTML.format(**html_context),
            text=_ADMIN_TEXT.format(**context),
        )

    def notify(self, kind: NotificationKind, member: StoredMember) -> None:
        """Send the notification of the given kind."""
        if kind is NotificationKind.APPLICANT:
            self.notify_applicant(member)
        else:
            self.notify_admin(member)

    def _send(self, kind: NotificationKind, to: str, subject: str, html: str, text: str) -> None:
        try:
            self.mailer.send(to=to, subject=subject, html=html, text=text)
        except Unavailable as e:
            raise NotificationError(f"{kind.value} notification failed: {e}", recipient=kind.value) from e
        except NotificationError as e:
            if e.recipient is None:
                e.recipient = kind.value
            raise

    def _context(self, member: StoredMember, escape_html: bool) -> dict[str, str]:
        values = {
            "org": self.organization_name,
            "name": member.full_name,
            "email": member.email,
            "member_id": member.member_id,
            "membership_type": member.membership_type,
            "registered": format_registration_date(member.registered_at),
        }
        if escape_html:
            return {key: escape(value) for key, value in values.items()}
        return values


@dataclass
class NotificationRelay:
    """
    Delivers queued notification intents from the outbox.

    Delivery is at-least-once: an entry is marked delivered only after the
    mailer accepted the message. Entries are leased before sending, so
    relays running in parallel never send the same entry twice while the
    lease holds. Every failed entry is recorded and the batch continues.
    """
    store: MemberStore
    outbox: NotificationOutbox
    dispatcher: NotificationDispatcher
    max_attempts: int = 5
    batch_size: int = 20
    lease_seconds: float = 60.0

    def drain(self) -> int:
        delivered = 0
        for entry in self.outbox.claim(self.batch_size, self.max_attempts, self.lease_seconds):
            try:
                member = self.store.find_by_member_id(entry.member_id)
                if member is None:
                    self.outbox.mark_failed(entry.id, "member not found")
                    logger.warning("Outbox entry %s references unknown member %s", entry.id, entry.member_id)
                    continue
                self.dispatcher.notify(entry.kind, member)
            except (NotificationError, Unavailable) as e:
                self.outbox.mark_failed(entry.id, str(e))
                logger.warning("Delivery of %s notification for %s failed (attempt %d): %s",
                               entry.kind.value, entry.member_id, entry.attempts + 1, e)
                continue
            except Exception as e:
                self.outbox.mark_failed(entry.id, f"{type(e).__name__}: {e}")
                logger.exception("Unexpected error delivering %s notification for %s (attempt %d)",
                                 entry.kind.value, entry.member_id, entry.attempts + 1)
                continue
            self.outbox.mark_delivered(entry.id)
            delivered += 1
        return delivered
