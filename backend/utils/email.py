import smtplib
from email.message import EmailMessage
from typing import List, Optional
from starlette.concurrency import run_in_threadpool
from core.config import Settings
from schemas.account_schema import CodeKind
from utils.timing import timeit
import logging

logger = logging.getLogger(__name__)

CODE_SUBJECTS = {
    CodeKind.VERIFICATION: "verification code",
    CodeKind.RESET: "Forgot password code",
}


class Mailer:
    """SMTP transport reporting which recipients the server accepted."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.SMTP_HOST and self.settings.SMTP_FROM_EMAIL)

    def _build_message(self, subject: str, to_email: str, html_body: str, text_body: Optional[str] = None) -> EmailMessage:
        s = self.settings
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{s.SMTP_FROM_NAME} <{s.SMTP_FROM_EMAIL}>" if s.SMTP_FROM_NAME else s.SMTP_FROM_EMAIL
        msg["To"] = to_email
        if text_body:
            msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _open(self) -> smtplib.SMTP:
        s = self.settings
        if s.SMTP_USE_SSL:
            server = smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT)
        else:
            server = smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT)
        server.set_debuglevel(1 if s.SMTP_DEBUG else 0)
        return server

    def _send_blocking(self, msg: EmailMessage, to_email: str) -> List[str]:
        s = self.settings
        with self._open() as server:
            if not s.SMTP_USE_SSL and s.SMTP_USE_TLS:
                server.starttls()
            if s.SMTP_USERNAME and s.SMTP_PASSWORD:
                server.login(s.SMTP_USERNAME, s.SMTP_PASSWORD)
            refused = server.send_message(msg)
        return [to_email] if to_email not in refused else []

    @timeit("mail_dispatch")
    async def send(self, to_email: str, subject: str, html_body: str, text_body: Optional[str] = None) -> List[str]:
        """Send one message; returns the accepted recipients (empty on any failure)."""
        if not self.configured:
            logger.warning("SMTP not configured; skipping email send")
            return []
        msg = self._build_message(subject, to_email, html_body, text_body)
        try:
            accepted = await run_in_threadpool(self._send_blocking, msg, to_email)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"Failed to send email to {to_email}: {exc}")
            return []
        logger.info(f"Sent email to {to_email} with subject '{subject}'")
        return accepted


async def send_code_email(mailer: Mailer, to_email: str, code: str, kind: CodeKind, ttl_minutes: int) -> List[str]:
    subject = CODE_SUBJECTS[kind]
    text = f"Your {subject} is {code}. It expires in {ttl_minutes} minutes."
    html = f"""
    <div style='font-family: Arial, sans-serif; line-height: 1.5;'>
      <h1>{code}</h1>
      <p>This code will expire in <strong>{ttl_minutes} minutes</strong>.</p>
      <p>If you did not request it, you can safely ignore this email.</p>
    </div>
    """
    return await mailer.send(to_email, subject, html, text)
