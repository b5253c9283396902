import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

from crewplan.config.settings import Settings, get_settings
from crewplan.models.effects import NotificationKind
from crewplan.models.entities import Mission, Technician
from crewplan.notifications.templates import render

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    pass


class Notifier(ABC):
    @abstractmethod
    def send(self, kind: NotificationKind, technician: Technician, mission: Mission) -> None:
        """Deliver one notification; raise NotificationError on failure."""


class LogNotifier(Notifier):
    """Used when no SMTP server is configured: notifications are only logged."""

    def send(self, kind: NotificationKind, technician: Technician, mission: Mission) -> None:
        template = render(kind, technician, mission)
        logger.info(f"[notification:{kind.value}] to={technician.email or technician.id} subject={template.subject!r}")


class SmtpNotifier(Notifier):
    def __init__(self, host: str, port: int, user: Optional[str], password: Optional[str], from_address: str):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_address = from_address

    def send(self, kind: NotificationKind, technician: Technician, mission: Mission) -> None:
        if not technician.email:
            raise NotificationError(f"Technician {technician.id} has no email address")

        template = render(kind, technician, mission)
        message = EmailMessage()
        message["Subject"] = template.subject
        message["From"] = self.from_address
        message["To"] = technician.email
        message.set_content(template.body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                server.starttls(context=ssl.create_default_context())
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"SMTP send to {technician.email} failed: {exc}")
            raise NotificationError(f"Failed to send email: {exc}") from exc
        logger.info(f"Email '{template.subject}' sent to {technician.email}")


def build_notifier(settings: Settings) -> Notifier:
    if settings.smtp_host:
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            from_address=settings.email_from,
        )
    return LogNotifier()


def get_notifier() -> Notifier:
    return build_notifier(get_settings())
