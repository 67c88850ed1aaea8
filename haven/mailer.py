"""
Outgoing transactional email.

Messages are posted as JSON to an HTTP email API (Resend-compatible
payload).  Delivery problems are logged and swallowed: a failed email
must never fail the request that triggered it.  When ``MAIL_API_KEY``
is empty delivery is skipped entirely, which is the normal state for
local development and tests.
"""
import logging

import httpx

from haven.config import settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, api_url: str, api_key: str, sender: str, timeout: float) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(self, to: str, subject: str, html: str) -> bool:
        """Send one message; return True when the API accepted it."""
        if not self.enabled:
            logger.info("Email delivery disabled, skipped %r to %s", subject, to)
            return False
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Email API rejected %r to %s (HTTP %s): %s",
                subject, to, exc.response.status_code, exc.response.text,
            )
            return False
        except httpx.HTTPError as exc:
            logger.error("Email delivery failed for %r to %s: %s", subject, to, exc)
            return False
        logger.info("Sent %r to %s", subject, to)
        return True


mailer = Mailer(
    api_url=settings.MAIL_API_URL,
    api_key=settings.MAIL_API_KEY,
    sender=settings.MAIL_FROM,
    timeout=settings.MAIL_TIMEOUT,
)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

async def send_verification_email(first_name: str, email: str, token: str) -> bool:
    link = f"{settings.FRONTEND_URL}/verify?token={token}"
    html = (
        f"<p>Hi {first_name},</p>"
        "<p>Thanks for joining Haven. Please confirm your email address:</p>"
        f'<p><a href="{link}">Verify my email</a></p>'
        f"<p>This link expires in {settings.VERIFY_TOKEN_TTL_HOURS} hours.</p>"
    )
    return await mailer.send(email, "Verify your email address", html)


async def send_reset_password_email(first_name: str, email: str, token: str) -> bool:
    link = f"{settings.FRONTEND_URL}/reset-password/{token}"
    html = (
        f"<p>Hi {first_name},</p>"
        "<p>We received a request to reset your password.</p>"
        f'<p><a href="{link}">Choose a new password</a></p>'
        f"<p>The link is valid for {settings.RESET_TOKEN_TTL_MINUTES} minutes and can be used once. "
        "If you did not ask for this, ignore this email.</p>"
    )
    return await mailer.send(email, "Reset your password", html)
