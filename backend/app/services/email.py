"""Outbound email: Jinja2-rendered templates sent over SMTP with aiosmtplib."""

import logging
from email.message import EmailMessage
from typing import Any, Optional

import aiosmtplib
from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

from app.core.config import get_settings
from app.models.enums import NotificationType

logger = logging.getLogger(__name__)

settings = get_settings()

_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <style>
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background-color: {{ accent }}; color: white; padding: 20px; text-align: center; }
    .content { background-color: #f9fafb; padding: 20px; }
    .button { display: inline-block; padding: 12px 24px; background-color: {{ accent }}; color: white; text-decoration: none; border-radius: 4px; margin: 20px 0; }
    .footer { text-align: center; padding: 20px; color: #6b7280; font-size: 12px; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{% block heading %}{% endblock %}</h1></div>
    <div class="content">
      <p>Hello {{ recipient_name }},</p>
      {% block body %}{% endblock %}
      {% if action_url %}<a href="{{ action_url }}" class="button">{{ action_label }}</a>{% endif %}
    </div>
    <div class="footer">
      <p>{{ app_name }} - Facilities Management Platform</p>
      <p>This is an automated message, please do not reply.</p>
    </div>
  </div>
</body>
</html>
"""

_TEMPLATES = {
    "layout.html": _LAYOUT,
    "job_assigned.html": """{% extends "layout.html" %}
{% block heading %}New Job Assigned{% endblock %}
{% block body %}
<p>You have been assigned a new job:</p>
<h2>{{ title }}</h2>
{% if property_name %}<p><strong>Property:</strong> {{ property_name }}</p>{% endif %}
{% if priority %}<p><strong>Priority:</strong> {{ priority }}</p>{% endif %}
<p><strong>Scheduled Date:</strong> {{ scheduled_date or "Not scheduled" }}</p>
<p>{{ message }}</p>
{% endblock %}""",
    "job_completed.html": """{% extends "layout.html" %}
{% block heading %}Job Completed{% endblock %}
{% block body %}
<h2>{{ title }}</h2>
<p>{{ message }}</p>
{% endblock %}""",
    "inspection.html": """{% extends "layout.html" %}
{% block heading %}{{ title }}{% endblock %}
{% block body %}
<p>{{ message }}</p>
{% if scheduled_date %}<p><strong>Scheduled Date:</strong> {{ scheduled_date }}</p>{% endif %}
{% endblock %}""",
    "invite.html": """{% extends "layout.html" %}
{% block heading %}You're Invited{% endblock %}
{% block body %}
<p>{{ inviter_name }} has invited you to join {{ app_name }} as {{ role_label }}.</p>
{% if property_name %}<p><strong>Property:</strong> {{ property_name }}</p>{% endif %}
{% if unit_number %}<p><strong>Unit:</strong> {{ unit_number }}</p>{% endif %}
<p>This invitation expires in {{ expiry_days }} days.</p>
{% endblock %}""",
    "generic.html": """{% extends "layout.html" %}
{% block heading %}{{ title }}{% endblock %}
{% block body %}
<p>{{ message }}</p>
{% endblock %}""",
}

_TEMPLATE_FOR_TYPE = {
    NotificationType.JOB_ASSIGNED: ("job_assigned.html", "#2563eb", "View Job Details"),
    NotificationType.JOB_COMPLETED: ("job_completed.html", "#10b981", "View Job"),
    NotificationType.INSPECTION_SCHEDULED: ("inspection.html", "#f59e0b", "View Inspection Details"),
    NotificationType.INSPECTION_REMINDER: ("inspection.html", "#f59e0b", "View Inspection Details"),
    NotificationType.INSPECTION_COMPLETED: ("inspection.html", "#10b981", "View Inspection Report"),
    NotificationType.SERVICE_REQUEST_UPDATE: ("generic.html", "#6366f1", "View Request"),
}

_env = Environment(
    loader=DictLoader(_TEMPLATES),
    autoescape=select_autoescape(["html", "xml"]),
    undefined=StrictUndefined,
)


def render_notification_email(
    notification_type: NotificationType,
    recipient_name: str,
    title: str,
    message: str,
    action_url: Optional[str] = None,
    **context: Any,
) -> tuple[str, str]:
    """Return (subject, html) for a notification email. Values are HTML-escaped."""
    template_name, accent, action_label = _TEMPLATE_FOR_TYPE.get(
        notification_type, ("generic.html", "#2563eb", "Open Buildstate")
    )
    context.setdefault("property_name", None)
    context.setdefault("priority", None)
    context.setdefault("scheduled_date", None)
    html = _env.get_template(template_name).render(
        app_name=settings.app_name,
        accent=accent,
        recipient_name=recipient_name,
        title=title,
        message=message,
        action_url=action_url,
        action_label=action_label,
        **context,
    )
    return title, html


def render_invite_email(
    signup_url: str,
    inviter_name: str,
    role: str,
    property_name: Optional[str] = None,
    unit_number: Optional[str] = None,
) -> tuple[str, str]:
    role_label = role.replace("_", " ").lower()
    html = _env.get_template("invite.html").render(
        app_name=settings.app_name,
        accent="#2563eb",
        recipient_name="there",
        action_url=signup_url,
        action_label="Accept Invitation",
        inviter_name=inviter_name,
        role_label=f"an {role_label}" if role_label[0] in "aeiou" else f"a {role_label}",
        property_name=property_name,
        unit_number=unit_number,
        expiry_days=settings.invite_expiry_days,
    )
    return f"You've been invited to join {settings.app_name}", html


class EmailService:
    """Sends HTML email through the configured SMTP relay."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username or settings.smtp_username
        self.password = password or settings.smtp_password
        self.sender = sender or settings.email_from

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")
        return msg

    async def send(self, to: str, subject: str, html: str) -> bool:
        """Send one message. Returns False (and logs) instead of raising."""
        if not self.enabled:
            logger.debug("SMTP not configured; skipping email to %s", to)
            return False

        msg = self.build_message(to, subject, html)
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.port == 465,
                start_tls=self.port == 587,
                timeout=30,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return False

        logger.info("Sent email '%s' to %s", subject, to)
        return True


def get_email_service() -> EmailService:
    return EmailService()
