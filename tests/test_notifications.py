import smtplib

import pytest

from crewplan.config.settings import Settings
from crewplan.models.effects import NotificationKind
from crewplan.notifications.mailer import LogNotifier, NotificationError, SmtpNotifier, build_notifier
from crewplan.notifications.templates import render


class TestTemplates:
    @pytest.mark.parametrize("kind", list(NotificationKind))
    def test_every_kind_renders(self, kind, technicians, mission_a):
        template = render(kind, technicians[0], mission_a)
        assert mission_a.title in template.subject
        assert "Hello Xavier" in template.body
        assert "01/06/2024 09:00" in template.body


class TestNotifierSelection:
    def test_log_notifier_without_smtp(self):
        assert isinstance(build_notifier(Settings(smtp_host=None)), LogNotifier)

    def test_smtp_notifier_when_configured(self):
        notifier = build_notifier(Settings(smtp_host="smtp.example.com", smtp_port=2525))
        assert isinstance(notifier, SmtpNotifier)
        assert notifier.port == 2525


class TestSmtpNotifier:
    def test_missing_email_raises(self, mission_a):
        from crewplan.models.entities import Technician

        notifier = SmtpNotifier("smtp.example.com", 587, None, None, "planning@example.com")
        with pytest.raises(NotificationError):
            notifier.send(NotificationKind.PROPOSED, Technician(id="T", name="No mail"), mission_a)

    def test_smtp_failure_wrapped(self, monkeypatch, technicians, mission_a):
        def refuse(*args, **kwargs):
            raise smtplib.SMTPConnectError(421, "service not available")

        monkeypatch.setattr(smtplib, "SMTP", refuse)
        notifier = SmtpNotifier("smtp.example.com", 587, "user", "secret", "planning@example.com")
        with pytest.raises(NotificationError):
            notifier.send(NotificationKind.ACCEPTED, technicians[0], mission_a)

    def test_sends_message(self, monkeypatch, technicians, mission_a):
        sent = []

        class FakeSMTP:
            def __init__(self, host, port, timeout=None):
                self.host = host

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def starttls(self, context=None):
                pass

            def login(self, user, password):
                sent.append(("login", user))

            def send_message(self, message):
                sent.append(("send", message["To"], message["Subject"]))

        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
        SmtpNotifier("smtp.example.com", 587, "user", "secret", "planning@example.com").send(
            NotificationKind.PROPOSED, technicians[0], mission_a
        )
        assert sent == [("login", "user"), ("send", "x@example.com", "New mission proposed: Sound system setup")]
