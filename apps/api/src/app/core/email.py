"""
Email Service using Resend

Renders and sends the applicant emails for the scholarship application
lifecycle: submission confirmation and status updates.
"""

import asyncio
import logging
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

EMAIL_FROM = settings.email_from
FRONTEND_URL = settings.frontend_url

_BASE_STYLE = """
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #1a365d; margin-bottom: 24px; }}
            .box {{ padding: 16px; border-radius: 8px; margin: 16px 0; border: 1px solid {border}; background-color: {background}; }}
            .button {{ display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
"""

# status -> (headline, message, box border, box background)
STATUS_MESSAGES: dict[str, tuple[str, str, str, str]] = {
    "under_review": (
        "Application Under Review",
        "Your application is now being reviewed by the selection committee.",
        "#93c5fd",
        "#eff6ff",
    ),
    "approved": (
        "Congratulations!",
        "Your scholarship application has been <strong>approved</strong>. "
        "You will be contacted within 5-7 business days with disbursement details. "
        "Please keep your documents ready for verification.",
        "#22c55e",
        "#d1fae5",
    ),
    "rejected": (
        "Update on Your Application",
        "After careful review we are unable to offer you this scholarship. "
        "Don't give up: keep applying to other scholarships that match your profile.",
        "#fecaca",
        "#fef2f2",
    ),
    "waitlisted": (
        "You Have Been Waitlisted",
        "Your application meets our criteria but is pending availability. "
        "You may be considered if slots become available and we will notify you of any change.",
        "#fcd34d",
        "#fffbeb",
    ),
}


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
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _render(headline: str, greeting_name: str, body: str, border: str, background: str) -> str:
    style = _BASE_STYLE.format(border=border, background=background)
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{style}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{headline}</h1>

            <p>Hello {greeting_name},</p>

            {body}

            <a href="{FRONTEND_URL}/dashboard" class="button">View My Applications</a>

            <div class="footer">
                <p>ScholarHub - Scholarship Portal</p>
            </div>
        </div>
    </body>
    </html>
    """


async def send_application_submitted(
    to_email: str,
    applicant_name: str,
    scholarship_title: str,
    application_id: str,
    submitted_on: str,
) -> bool:
    """Send submission confirmation to the applicant."""
    safe_applicant_name = escape(applicant_name)
    safe_scholarship_title = escape(scholarship_title)

    body = f"""
            <p>Thank you for applying for <strong>{safe_scholarship_title}</strong>.</p>

            <div class="box">
                <p><strong>Application ID:</strong> {escape(application_id)}</p>
                <p><strong>Submitted on:</strong> {escape(submitted_on)}</p>
            </div>

            <p>Your application can no longer be edited. We will email you when its status changes.</p>
    """
    html_content = _render(
        "Application Submitted", safe_applicant_name, body, "#e5e7eb", "#f9fafb"
    )

    return await send_email(
        to_email=to_email,
        subject=f"Application submitted - {safe_scholarship_title}",
        html_content=html_content,
    )


async def send_application_status_changed(
    to_email: str,
    applicant_name: str,
    scholarship_title: str,
    status: str,
    review_notes: str | None = None,
    award_amount: str | None = None,
) -> bool:
    """Send a status update (under review, approved, rejected, waitlisted)."""
    safe_applicant_name = escape(applicant_name)
    safe_scholarship_title = escape(scholarship_title)

    headline, message, border, background = STATUS_MESSAGES.get(
        status,
        ("Application Update", "Your application status has been updated.", "#e5e7eb", "#f9fafb"),
    )

    extra = ""
    if award_amount:
        extra += f"<p><strong>Award amount:</strong> {escape(award_amount)}</p>"
    if review_notes:
        extra += f"<p><strong>Reviewer notes:</strong></p><p>{escape(review_notes)}</p>"

    status_label = escape(status.replace("_", " ").title())
    body = f"""
            <p>Your application for <strong>{safe_scholarship_title}</strong> has a new status:
            <strong>{status_label}</strong>.</p>

            <div class="box">
                <p>{message}</p>
                {extra}
            </div>
    """
    html_content = _render(headline, safe_applicant_name, body, border, background)

    return await send_email(
        to_email=to_email,
        subject=f"Application update - {safe_scholarship_title} | Status: {status.upper()}",
        html_content=html_content,
    )
