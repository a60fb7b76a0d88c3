import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import List, Optional

from loguru import logger
from sqlmodel import Session, select
from typing_extensions import Protocol

from app.core.config import Settings
from app.db.schema import PDIRequest, PDIRequestStatus, Role, User
from app.models.auth import Principal
from .email_templates import pdi_request_admin_template, pdi_status_update_template


class Notifier(Protocol):
    """
    Delivery channel for PDI request alerts.
    Both calls report success as a bool and must not raise.
    """

    def notify_admin_of_new_request(self, record: PDIRequest, requester: Principal) -> bool:
        ...

    def notify_requester_of_status_change(
        self, record: PDIRequest, new_status: PDIRequestStatus, message: Optional[str]
    ) -> bool:
        ...


class EmailNotifier:
    """SMTP-backed Notifier. If SMTP is not configured, alerts are logged but not sent."""

    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings

    def is_configured(self) -> bool:
        return bool(self.settings.smtp_host and self.settings.smtp_from_email)

    def _send_email(self, to_email: str, subject: str, body_html: str) -> bool:
        if not self.is_configured():
            logger.warning(
                f"[EMAIL NOT SENT - SMTP NOT CONFIGURED] {subject} -> {to_email}")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = formataddr(
                (self.settings.smtp_from_name, self.settings.smtp_from_email))
            msg["To"] = to_email
            msg.attach(MIMEText(body_html, "html"))

            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as server:
                if self.settings.smtp_use_tls:
                    server.starttls()
                if self.settings.smtp_username:
                    server.login(self.settings.smtp_username,
                                 self.settings.smtp_password)
                server.sendmail(self.settings.smtp_from_email,
                                [to_email], msg.as_string())

            logger.info(f"[EMAIL SENT] {subject} -> {to_email}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[EMAIL FAILED] {subject} -> {to_email}: {e}")
            return False

    def _admin_emails(self) -> List[str]:
        statement = select(User.email).where(User.role == Role.ADMIN)
        return list(self.session.exec(statement).all())

    def notify_admin_of_new_request(self, record: PDIRequest, requester: Principal) -> bool:
        try:
            admins = self._admin_emails()
            if not admins:
                logger.warning(
                    f"No admin accounts to notify about PDI request {record.id}")
                return False

            html = pdi_request_admin_template(
                record, requester, self.settings.public_url)
            results = [
                self._send_email(email, "New PDI Request Received", html)
                for email in admins
            ]
            return all(results)
        except Exception:
            logger.exception(
                f"Failed to send PDI admin notification for {record.id}")
            return False

    def notify_requester_of_status_change(
        self, record: PDIRequest, new_status: PDIRequestStatus, message: Optional[str]
    ) -> bool:
        try:
            owner = self.session.get(User, record.user_id)
            if not owner:
                logger.warning(
                    f"Owner of PDI request {record.id} no longer exists")
                return False

            html = pdi_status_update_template(
                record, new_status.value, message, self.settings.public_url)
            return self._send_email(owner.email, "Updates on your PDI Request", html)
        except Exception:
            logger.exception(
                f"Failed to send PDI status update email for {record.id}")
            return False
