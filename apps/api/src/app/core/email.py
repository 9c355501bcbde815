"""
Email Service using Resend

Sends applicant-facing notification emails for the permit review pipeline.
"""

import asyncio
import logging
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = settings.resend_api_key


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent (or logged when no API key is configured)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_notification_email(
    to_email: str,
    title: str,
    message: str,
    application_no: str,
    link: str | None = None,
) -> bool:
    """Send the email copy of an in-app notification."""
    # Escape user inputs to prevent XSS
    safe_title = escape(title)
    safe_message = escape(message)
    safe_application_no = escape(application_no)

    action = ""
    if link:
        action_url = f"{settings.frontend_url}{link}"
        action = f'<a href="{escape(action_url)}" class="button">View Application</a>'

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #14532d; margin-bottom: 24px; }}
            .reference {{ background-color: #f3f4f6; padding: 12px 16px; border-radius: 8px; }}
            .button {{ display: inline-block; background-color: #14532d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{safe_title}</h1>

            <p class="reference">Application <strong>{safe_application_no}</strong></p>

            <p>{safe_message}</p>

            {action}

            <div class="footer">
                <p>Deadlines are counted in working days (Monday to Friday).</p>
                <p>Mining Permit Online Application System</p>
            </div>
        </div>
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject=f"[{safe_application_no}] {safe_title}",
        html_content=html_content,
    )
