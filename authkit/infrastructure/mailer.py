import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ..core.settings import Settings

logger = logging.getLogger(__name__)


class SmtpMailer:
    """Sends HTML+text mail through the configured SMTP relay (STARTTLS)."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.SMTP_HOST and s.SMTP_PORT and s.SMTP_USER and s.SMTP_PASSWORD)

    def send_email(self, to_email: str, subject: str, html_body: str, text_body: Optional[str] = None) -> None:
        s = self.settings
        from_addr = s.SMTP_FROM or s.SMTP_USER
        from_name = s.SMTP_FROM_NAME

        if not self.configured:
            raise RuntimeError("SMTP is not configured. Set SMTP_HOST, SMTP_PORT, SMTP_USER and SMTP_PASSWORD.")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{from_name} <{from_addr}>" if from_name else from_addr
        msg["To"] = to_email

        if text_body:
            msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT) as server:
            server.ehlo()
            server.starttls()
            server.login(s.SMTP_USER, s.SMTP_PASSWORD)
            server.sendmail(from_addr, [to_email], msg.as_string())
        logger.info("Email '%s' sent", subject)

    def send_otp_email(self, to_email: str, code: str, message: str) -> None:
        subject = "Your OTP Code"
        html = f"""
        <p>Hello,</p>
        <p>Your one-time password (OTP) is:</p>
        <p style='font-size:20px;font-weight:bold;letter-spacing:2px'>{code}</p>
        <p>This code expires in {self.settings.OTP_EXPIRES_IN} seconds. If you did not request this, please ignore this email.</p>
        """
        self.send_email(to_email, subject, html, message)

    def send_password_reset_email(self, to_email: str, token: str) -> None:
        subject = "Reset your password"
        html = f"""
        <p>Hello,</p>
        <p>Use this token to reset your password:</p>
        <p style='font-family:monospace'>{token}</p>
        <p>If you did not request a password reset, you can ignore this email.</p>
        """
        text = f"Your password reset token is: {token}"
        self.send_email(to_email, subject, html, text)

    def send_verification_email(self, to_email: str, token: str) -> None:
        subject = "Verify your account"
        html = f"""
        <p>Welcome!</p>
        <p>Use this token to verify your account:</p>
        <p style='font-family:monospace'>{token}</p>
        <p>If you did not create an account, you can ignore this email.</p>
        """
        text = f"Your verification token is: {token}"
        self.send_email(to_email, subject, html, text)
