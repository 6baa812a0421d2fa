import html
from typing import Optional

import httpx
from structlog import get_logger
from pybreaker import CircuitBreaker

from propertyhub.config import settings

logger = get_logger(__name__)
breaker = CircuitBreaker(fail_max=3, reset_timeout=60)

RESEND_URL = "https://api.resend.com/emails"


class EmailDeliveryError(Exception):
    pass


def contact_html(message: str, phone: Optional[str] = None) -> str:
    body = html.escape(message).replace("\n", "<br>")
    if phone:
        body += f"<br><br>Phone: {html.escape(phone)}"
    return body


def interest_html(name: str, email: str, mobile: Optional[str], target: str, message: Optional[str] = None) -> str:
    rows = [
        f"<strong>{html.escape(name)}</strong> is interested in <strong>{html.escape(target)}</strong>.",
        f"Email: {html.escape(email)}",
    ]
    if mobile:
        rows.append(f"Mobile: {html.escape(mobile)}")
    if message:
        rows.append("Message:<br>" + html.escape(message).replace("\n", "<br>"))
    return "<br><br>".join(rows)


@breaker
async def send_email(subject: str, html_body: str, reply_to: Optional[str] = None,
                     client: Optional[httpx.AsyncClient] = None) -> Optional[str]:
    """Sends through the Resend API and returns the provider's message id."""
    if not settings.RESEND_API_KEY:
        raise EmailDeliveryError("RESEND_API_KEY not configured")

    payload = {
        "from": settings.CONTACT_EMAIL_FROM,
        "to": [settings.CONTACT_EMAIL_TO],
        "subject": subject,
        "html": html_body,
    }
    if reply_to:
        payload["reply_to"] = reply_to
    headers = {"Authorization": f"Bearer {settings.RESEND_API_KEY}"}

    if client is None:
        async with httpx.AsyncClient() as own_client:
            resp = await own_client.post(RESEND_URL, json=payload, headers=headers, timeout=10.0)
    else:
        resp = await client.post(RESEND_URL, json=payload, headers=headers, timeout=10.0)

    if resp.status_code >= 400:
        logger.error("Email API failed", status_code=resp.status_code, text=resp.text)
        raise EmailDeliveryError(f"Email API failed with status {resp.status_code}")
    return resp.json().get("id")
