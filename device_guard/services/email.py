"""
Email service: sends verification codes via SMTP.

In development (no SMTP configured), codes are logged to the console
so you can see what *would* be sent without configuring a mail server.
"""

from __future__ import annotations

import logging
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

import aiosmtplib

from device_guard.config import (
    OTP_TTL_MINUTES,
    SMTP_FROM_EMAIL,
    SMTP_FROM_NAME,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
    smtp_enabled,
)
from device_guard.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

SUBJECT = "Your verification code"

# Port on which servers expect implicit TLS rather than STARTTLS.
_IMPLICIT_TLS_PORT = 465


def _build_html_body(code: str, sender_name: str, ttl_minutes: int) -> str:
    return f"""
    <html>
    <body style="font-family:Arial,sans-serif;background:#f4f6f8;margin:0;padding:0">
      <div style="max-width:600px;margin:40px auto;background:#fff;border-radius:8px">
        <div style="padding:30px 20px;color:#333;text-align:center">
          <h1 style="color:#15446D;font-size:24px">Your verification code</h1>
          <p>Use the code below to finish verifying your email:</p>
          <div style="display:inline-block;background:#009EE0;color:#fff;font-size:22px;
                      font-weight:bold;padding:10px 20px;border-radius:6px;letter-spacing:2px">
            {code}
          </div>
          <p>The code expires in {ttl_minutes} minutes.</p>
          <p>If you did not request this code, please contact us.</p>
        </div>
        <div style="background:#f0f2f5;color:#666;font-size:12px;text-align:center;padding:15px 20px">
          &copy; {datetime.now().year} {sender_name}
        </div>
      </div>
    </body>
    </html>
    """


class CodeMailer:
    """Delivers verification codes, or logs them when SMTP is disabled."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        from_email: str,
        from_name: str,
        use_tls: bool,
        enabled: bool,
        ttl_minutes: int = OTP_TTL_MINUTES,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._from_email = from_email
        self._from_name = from_name
        self._use_tls = use_tls
        self._enabled = enabled
        self._ttl_minutes = ttl_minutes

    @classmethod
    def from_config(cls) -> CodeMailer:
        return cls(
            host=SMTP_HOST,
            port=SMTP_PORT,
            username=SMTP_USERNAME,
            password=SMTP_PASSWORD,
            from_email=SMTP_FROM_EMAIL,
            from_name=SMTP_FROM_NAME,
            use_tls=SMTP_USE_TLS,
            enabled=smtp_enabled(),
        )

    def build_message(self, to_address: str, code: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = SUBJECT
        msg["From"] = formataddr((self._from_name, self._from_email))
        msg["To"] = to_address
        msg.attach(MIMEText(f"Your code is: {code}", "plain"))
        msg.attach(
            MIMEText(_build_html_body(code, self._from_name, self._ttl_minutes), "html")
        )
        return msg

    async def send_code(self, to_address: str, code: str) -> None:
        """
        Send (or log) a verification code.

        Raises EmailDeliveryError when the SMTP server cannot be reached or
        refuses the message. The stored code is unaffected either way.
        """
        # ── Console fallback (dev mode) ───────────────────────────────────
        if not self._enabled:
            logger.info("📧 [DEV] Would send code %s to %s", code, to_address)
            return

        # ── Real SMTP send ────────────────────────────────────────────────
        implicit_tls = self._use_tls and self._port == _IMPLICIT_TLS_PORT
        try:
            await aiosmtplib.send(
                self.build_message(to_address, code),
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                use_tls=implicit_tls,
                start_tls=self._use_tls and not implicit_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.exception("Failed to send code to %s", to_address)
            raise EmailDeliveryError(f"Could not deliver code: {exc}") from exc
        logger.info("Code sent to %s", to_address)
