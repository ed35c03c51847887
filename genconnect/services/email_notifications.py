"""
Email Notifications

Transactional emails sent through SendGrid. Every sender is best effort:
failures are logged and reported as ``False``, never raised, so a mail
outage cannot undo a state change that has already been committed.
"""
import logging
from datetime import datetime
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

from genconnect import config

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html_body: str, plain_body: Optional[str] = None) -> bool:
    """Send a single email via SendGrid. Returns True on a 2xx response."""
    if not config.SENDGRID_API_KEY or not config.SENDER_EMAIL:
        logger.info(f"Email to {to_email} skipped - SendGrid not configured")
        return False

    mail = Mail(Email(config.SENDER_EMAIL), To(to_email), subject)
    if plain_body:
        mail.add_content(Content("text/plain", plain_body))
    mail.add_content(Content("text/html", html_body))

    try:
        response = SendGridAPIClient(api_key=config.SENDGRID_API_KEY).send(mail)
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False

    if not 200 <= response.status_code < 300:
        logger.error(f"SendGrid rejected email to {to_email}: status {response.status_code}")
        return False

    logger.info(f"Email sent to {to_email}: {subject}")
    return True


def _format_when(session_date: datetime) -> str:
    return session_date.strftime("%A, %B %d, %Y at %H:%M UTC")


def send_session_confirmation(
    tutee_email: str,
    tutee_name: str,
    tutor_name: str,
    reading_title: str,
    session_date: datetime,
    duration_minutes: int,
    join_url: Optional[str] = None,
) -> bool:
    """Tell the tutee their session request was accepted"""
    when = _format_when(session_date)
    link_line = f"Join here: {join_url}" if join_url else "Your tutor will share the meeting link."

    plain_body = f"""Hi {tutee_name},

{tutor_name} accepted your session request.

Reading: {reading_title}
When: {when}
Length: {duration_minutes} minutes

{link_line}
"""
    link_html = (
        f'<p style="margin:24px 0;"><a href="{join_url}" '
        f'style="display:inline-block; padding:12px 20px; color:#ffffff; background-color:#1e40af; '
        f'text-decoration:none; border-radius:6px; font-weight:600;">Join Session</a></p>'
        if join_url else f"<p>{link_line}</p>"
    )
    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #1e40af;">Your session is confirmed</h2>
      <p>Hi {tutee_name}, <strong>{tutor_name}</strong> accepted your session request.</p>
      <div style="background-color: #f0f9ff; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p><strong>Reading:</strong> {reading_title}</p>
        <p><strong>When:</strong> {when}</p>
        <p><strong>Length:</strong> {duration_minutes} minutes</p>
      </div>
      {link_html}
    </div>
    """
    return send_email(tutee_email, f"Session confirmed with {tutor_name}", html_body, plain_body)


def send_booking_request_notification(
    tutor_email: str,
    tutor_name: str,
    tutee_name: str,
    reading_title: str,
    session_date: datetime,
    duration_minutes: int,
) -> bool:
    """Tell the tutor a new session request is waiting for them"""
    when = _format_when(session_date)
    plain_body = f"""Hi {tutor_name},

{tutee_name} requested a {duration_minutes}-minute session on {when} to discuss "{reading_title}".

Please accept or decline within {config.REQUEST_TTL_HOURS} hours.
"""
    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #1e40af;">New session request</h2>
      <p><strong>{tutee_name}</strong> requested a {duration_minutes}-minute session.</p>
      <div style="background-color: #f0f9ff; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p><strong>Reading:</strong> {reading_title}</p>
        <p><strong>When:</strong> {when}</p>
      </div>
      <p style="color: #6b7280; font-size: 14px;">
        Please accept or decline within {config.REQUEST_TTL_HOURS} hours.
      </p>
    </div>
    """
    return send_email(tutor_email, f"New session request from {tutee_name}", html_body, plain_body)


def send_contact_request_notification(
    tutor_email: str,
    tutor_name: str,
    name: str,
    email: str,
    phone: str,
    preferred_topics: str,
    message: Optional[str] = None,
) -> bool:
    """Forward a public contact request to the tutor it names"""
    plain_body = f"""A senior has requested to connect with {tutor_name}.

Name: {name}
Email: {email}
Phone: {phone}
Interested in: {preferred_topics}
{f"Message: {message}" if message else ""}
"""
    message_html = f"<p><strong>Message:</strong><br>{message}</p>" if message else ""
    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #1e40af;">New Contact Request</h2>
      <p>A senior has requested to connect with <strong>{tutor_name}</strong>.</p>
      <div style="background-color: #f0f9ff; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p><strong>Name:</strong> {name}</p>
        <p><strong>Email:</strong> <a href="mailto:{email}">{email}</a></p>
        <p><strong>Phone:</strong> <a href="tel:{phone}">{phone}</a></p>
        <p><strong>Interested in:</strong> {preferred_topics}</p>
        {message_html}
      </div>
      <p style="color: #6b7280; font-size: 14px;">
        <strong>Next steps:</strong> Reach out to {name} at {email} or {phone} to schedule a session.
      </p>
    </div>
    """
    return send_email(tutor_email, f"New Contact Request for {tutor_name}", html_body, plain_body)
