import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import settings

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html_body: str, text_body: str = "") -> bool:
    """Send email via SMTP (blocking). Use from a background task."""
    if not settings.email_enabled:
        logger.info("Email simulation (SMTP not configured): to=%s subject=%s", to_email, subject)
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    if text_body:
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
        return True
    except Exception as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)
        return False


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _detail_rows(rows: list[tuple[str, str]]) -> str:
    return "\n".join(
        f'<p style="margin:0 0 8px 0;"><strong>{label}:</strong> {_html_escape(value)}</p>'
        for label, value in rows
    )


def build_owner_alert_html(
    customer_name: str,
    customer_phone: str,
    service_type: str,
    confirmation_time: str,
    event_id: str,
    html_link: str,
) -> str:
    rows = _detail_rows([
        ("Customer", customer_name),
        ("Phone", customer_phone or "not provided"),
        ("Service", service_type),
        ("Date & Time", confirmation_time),
        ("Confirmation ID", event_id),
        ("Booked by", f"{settings.assistant_name.capitalize()} AI"),
    ])
    link = ""
    if html_link:
        link = (
            f'<p><a href="{_html_escape(html_link)}" style="background:#2563eb;color:#ffffff;'
            'padding:10px 20px;text-decoration:none;border-radius:5px;">View in Google Calendar</a></p>'
        )
    return f"""
<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">
  <h2 style="color:#2563eb;">New Booking Alert</h2>
  <div style="background:#f3f4f6;padding:20px;border-radius:8px;">
    {rows}
  </div>
  {link}
</div>
"""


def build_customer_confirmation_html(
    customer_name: str, service_type: str, confirmation_time: str, event_id: str
) -> str:
    """Build HTML body for the customer's appointment confirmation."""
    contact = ""
    if settings.contact_phone:
        contact = (
            '<p style="text-align:center;color:#666;">Need to reschedule? Call us at '
            f"{_html_escape(settings.contact_phone)}</p>"
        )
    return f"""
<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">
  <h2 style="color:#2563eb;">Your Appointment is Confirmed!</h2>
  <div style="background:#f3f4f6;padding:20px;border-radius:8px;">
    <p>Hi {_html_escape(customer_name or 'there')}!</p>
    <p>Your <strong>{_html_escape(service_type)}</strong> appointment is confirmed for:</p>
    <p style="font-size:18px;color:#2563eb;"><strong>{_html_escape(confirmation_time)}</strong></p>
    <p><strong>Confirmation ID:</strong> {_html_escape(event_id)}</p>
  </div>
  {contact}
  <p style="text-align:center;color:#666;">{_html_escape(settings.site_name)}</p>
</div>
"""
