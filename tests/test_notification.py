"""
Tests for the SMTP notifier.
The network is never touched: smtplib.SMTP is replaced with a fake.
"""
import smtplib

import pytest

from app.core.config import Settings
from app.db.schema import PDIRequest, PDIRequestStatus, Role
from app.services import notification
from app.services.notification import EmailNotifier

from conftest import make_user, principal_for


class FakeSMTP:
    sent = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def sendmail(self, from_addr, to_addrs, msg):
        if FakeSMTP.fail_with:
            raise FakeSMTP.fail_with
        FakeSMTP.sent.append((from_addr, tuple(to_addrs), msg))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.sent = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(notification.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def _settings(**overrides):
    values = dict(
        secret_key="unused",
        smtp_host="smtp.example.com",
        smtp_from_email="noreply@example.com",
        smtp_username="mailer",
        smtp_password="pw",
        public_url="https://pdi.example.com",
    )
    values.update(overrides)
    return Settings(**values)


def _record(owner):
    return PDIRequest(
        user_id=owner.id, vehicle_name="Honda", vehicle_model="City",
        location="Pune", mobile="9999999999",
    )


def test_admin_alert_goes_to_every_admin(session, fake_smtp):
    owner = make_user(session, "u1@example.com")
    make_user(session, "a1@example.com", role=Role.ADMIN)
    make_user(session, "a2@example.com", role=Role.ADMIN)

    notifier = EmailNotifier(session, _settings())
    assert notifier.notify_admin_of_new_request(_record(owner), principal_for(owner)) is True

    recipients = sorted(to[0] for _, to, _ in fake_smtp.sent)
    assert recipients == ["a1@example.com", "a2@example.com"]
    assert "Honda" in fake_smtp.sent[0][2]


def test_admin_alert_without_admins_reports_failure(session, fake_smtp):
    owner = make_user(session, "u1@example.com")
    notifier = EmailNotifier(session, _settings())
    assert notifier.notify_admin_of_new_request(_record(owner), principal_for(owner)) is False
    assert fake_smtp.sent == []


def test_status_update_goes_to_owner(session, fake_smtp):
    owner = make_user(session, "u1@example.com")
    notifier = EmailNotifier(session, _settings())

    delivered = notifier.notify_requester_of_status_change(
        _record(owner), PDIRequestStatus.ISSUES_FOUND, "Scratch on rear bumper")

    assert delivered is True
    _, to, msg = fake_smtp.sent[0]
    assert to == ("u1@example.com",)
    assert "ISSUES FOUND" in msg
    assert "Scratch on rear bumper" in msg


def test_smtp_failure_returns_false(session, fake_smtp):
    owner = make_user(session, "u1@example.com")
    fake_smtp.fail_with = smtplib.SMTPRecipientsRefused({})
    notifier = EmailNotifier(session, _settings())

    assert notifier.notify_requester_of_status_change(
        _record(owner), PDIRequestStatus.COMPLETED, None) is False


def test_unconfigured_smtp_does_not_send(session, fake_smtp):
    owner = make_user(session, "u1@example.com")
    notifier = EmailNotifier(session, _settings(smtp_host=""))

    assert notifier.is_configured() is False
    assert notifier.notify_requester_of_status_change(
        _record(owner), PDIRequestStatus.COMPLETED, None) is False
    assert fake_smtp.sent == []
