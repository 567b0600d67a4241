# infrastructure/delivery/mailer.py
import asyncio
import html
import logging
import re
from datetime import date
from typing import List, Optional

from photobooth.config.settings import settings
from photobooth.domain.errors import DeliveryError

logger = logging.getLogger("uvicorn.error")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def render_email_html(composites: List[str], template: str, today: date = None) -> str:
    today = today or date.today()
    photos = "".join(
        f'<img src="{html.escape(src, quote=True)}" style="max-width: 100%; height: auto; margin: 10px 0;" />'
        for src in composites
    )
    return f"""<!DOCTYPE html>
<html>
  <head><title>Your PhotoBooth Photos</title></head>
  <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #ff6b6b; text-align: center;">Your PhotoBooth Photos!</h1>
    <p style="text-align: center;">Thank you for using our PhotoBooth! Here are your photos:</p>
    <div style="text-align: center;">{photos}</div>
    <p style="text-align: center; color: #666; font-size: 14px;">
      Template: {html.escape(template)}<br>
      Date: {today.month}/{today.day}/{today.year}
    </p>
    <p style="text-align: center; color: #999; font-size: 12px;">This email was sent from PhotoBooth Application</p>
  </body>
</html>
"""


class EmailAdapter:
    """Simulated email delivery: validates, renders the body, waits, succeeds."""

    def __init__(self, api_key: Optional[str] = None, delay: float = None):
        self.api_key = api_key or settings.EMAIL_API_KEY or ""
        self.delay = settings.EMAIL_SIMULATED_DELAY if delay is None else delay

    async def send_photos(self, email: str, composites: List[str], template: str = "strip") -> str:
        if not validate_email(email):
            raise DeliveryError(f"Invalid email address: {email!r}", method="email")
        body = render_email_html(composites, template)
        logger.info(f"Sending {len(composites)} photos to {email} (template: {template}, {len(body)} chars)")
        await asyncio.sleep(self.delay)
        logger.info("Email sent successfully!")
        return body
