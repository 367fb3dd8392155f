"""
SMTP mailer adapter - Implements Mailer protocol via smtplib.

Opens one SMTP session per message with a bounded socket timeout.
Connection failures surface as Unavailable; rejected messages and
timeouts surface as NotificationError.
"""

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr

from src.config.settings import Settings
from src.domain.exceptions import NotificationError, Unavailable

logger = logging.getLogger(__name__)

# Well-known providers selectable by name: (host, port, implicit TLS)
SERVICE_PRESETS: dict[str, tuple[str, int, bool]] = {
    "gmail": ("smtp.gmail.com", 465, True),
    "outlook": ("smtp-mail.outlook.com", 587, False),
    "hotmail": ("smtp-mail.outlook.com", 587, False),
    "office365": ("smtp.office365.com", 587, False),
    "yahoo": ("smtp.mail.yahoo.com", 465, True),
}


@dataclass
class SmtpMailer:
    """
    Implements Mailer protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    host: str
    port: int
    sender: str
    username: str | None = None
    password: str | None = None
    use_ssl: bool = False
    starttls: bool = True
    timeout: float = 10.0
    sender_name: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailer":
        """
        Build a mailer from settings.

        A known email_service name overrides smtp_host/smtp_port/smtp_use_ssl.
        """
        host, port, use_ssl = settings.smtp_host, settings.smtp_port, settings.smtp_use_ssl
        if settings.email_service:
            preset = SERVICE_PRESETS.get(settings.email_service.lower())
            if preset is None:
                raise ValueError(f"Unknown email service: {settings.email_service}")
            host, port, use_ssl = preset

        sender = settings.mail_from or settings.email_user
        if not sender:
            raise ValueError("mail_from or email_user must be set for SMTP delivery")

        return cls(
            host=host,
            port=port,
            sender=sender,
            username=settings.email_user,
            password=settings.email_password,
            use_ssl=use_ssl,
            starttls=settings.smtp_starttls and not use_ssl,
            timeout=settings.smtp_timeout_seconds,
            sender_name=settings.organization_name,
        )

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.sender_name, self.sender)) if self.sender_name else self.sender
        message["To"] = to
        message.set_content(text)
        message.add_alternative(html, subtype="html")

        try:
            with self._connect() as server:
                if self.starttls:
                    server.starttls(context=ssl.create_default_context())
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(message)
        except TimeoutError as e:
            raise NotificationError(f"Mail send to {to} timed out") from e
        except (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected) as e:
            raise Unavailable("mail", f"Mail transport unavailable: {e}") from e
        except smtplib.SMTPException as e:
            raise NotificationError(f"Mail send to {to} rejected: {e}") from e
        except OSError as e:
            raise Unavailable("mail", f"Mail transport unreachable: {e}") from e

        logger.info("Sent '%s' to %s via %s:%s", subject, to, self.host, self.port)

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)
