import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from estate_market.core.breaker import CircuitBreaker
from estate_market.core.settings import settings
from estate_market.core.url_parser import parser

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self):
        self.breaker = CircuitBreaker("smtp")

    @property
    def enabled(self) -> bool:
        return bool(settings.EMAIL_SERVER and settings.EMAIL_USER)

    async def send(self, to: str, subject: str, html_content: str) -> bool:
        if not self.enabled:
            logger.info(f"SMTP not configured; skipping '{subject}' to {to}")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = settings.EMAIL_FROM or settings.EMAIL_USER
        message["To"] = to
        message.attach(MIMEText(html_content, "html"))

        async def handler():
            await aiosmtplib.send(
                message,
                hostname=settings.EMAIL_SERVER,
                port=settings.EMAIL_PORT,
                username=settings.EMAIL_USER,
                password=settings.EMAIL_PASSWORD,
                start_tls=settings.EMAIL_USE_TLS,
            )
            return True

        return await self.breaker.call(handler)

    async def send_verification_email(self, email: str, name: str, token: str):
        verify_link = parser.with_query(
            f"{settings.FRONTEND_URL}/verify-email", f"token={token}"
        )
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            <h2>Email Verification</h2>
            <p>Hello {name},</p>
            <p>Please verify your email by clicking the link below:</p>
            <a href="{verify_link}" style="display:inline-block;background:#28a745;color:white;padding:10px 20px;
               text-decoration:none;border-radius:4px;">Verify Email</a>
            <p>This link will expire in {settings.EMAIL_VERIFY_EXPIRE_HOURS} hours.</p>
            <hr>
            <p>If you did not create an account, please ignore this message.</p>
            <p>Best regards,<br>Your Support Team</p>
        </body>
        </html>
        """
        return await self.send(email, "Verify Your Email", html_content)

    async def send_password_reset_email(self, email: str, name: str, token: str):
        reset_link = parser.with_query(
            f"{settings.FRONTEND_URL}/reset-password", f"token={token}"
        )
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            <h2>Password Reset</h2>
            <p>Hello {name},</p>
            <p>We received a request to reset your password.</p>
            <a href="{reset_link}" style="display:inline-block;background:#007bff;color:white;padding:10px 20px;
               text-decoration:none;border-radius:4px;">Reset Password</a>
            <p>This link will expire in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes.</p>
            <p>If you did not request this, please ignore this message.</p>
            <p>Best regards,<br>Your Support Team</p>
        </body>
        </html>
        """
        return await self.send(email, "Reset Your Password", html_content)

    async def send_booking_confirmation(
        self, email: str, name: str, property_title: str, check_in, check_out
    ):
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            <h2>Booking Confirmed</h2>
            <p>Hello {name},</p>
            <p>Your payment was received and your stay at <b>{property_title}</b> is confirmed.</p>
            <p>Check-in: {check_in:%Y-%m-%d}<br>Check-out: {check_out:%Y-%m-%d}</p>
            <p>Best regards,<br>Your Support Team</p>
        </body>
        </html>
        """
        return await self.send(email, "Booking Confirmed", html_content)


email_service = EmailService()
