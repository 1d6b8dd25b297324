import asyncio
import smtplib
from email.message import EmailMessage

from loguru import logger

from ..config import Config
from ..utils import TextUtils


class MailConnector:
    """Sends HTML notifications over SMTP (SSL)."""

    @staticmethod
    def is_configured() -> bool:
        return bool(Config.EMAIL_USER and Config.EMAIL_PASS and Config.EMAIL_TO)

    @staticmethod
    def build_message(subject: str, html_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = Config.EMAIL_USER or ""
        msg["To"] = ", ".join(Config.EMAIL_TO)
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _send_blocking(self, msg: EmailMessage):
        with smtplib.SMTP_SSL(Config.SMTP_HOST, Config.SMTP_PORT, timeout=30) as server:
            server.login(Config.EMAIL_USER, Config.EMAIL_PASS)
            server.send_message(msg)

    async def notify(self, subject: str, html_body: str) -> bool:
        """Send one message. Returns False when mail is not configured.

        SMTP errors propagate to the caller.
        """
        if not self.is_configured():
            preview = TextUtils.truncate_text(html_body, Config.LOG_PAYLOAD_PREVIEW_MAX)
            logger.warning(f"[mail] not configured; would send {subject!r}: {preview}")
            return False

        await asyncio.to_thread(self._send_blocking, self.build_message(subject, html_body))
        logger.info(f"[mail] sent {subject!r} to {len(Config.EMAIL_TO)} recipient(s)")
        return True
