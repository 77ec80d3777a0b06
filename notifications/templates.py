"""Per-type email and SMS templates and placeholder rendering.

Templates are looked up by exact notification type. Anything not in the
tables, including an empty type, gets the generic template. Each lookup
returns a template carrying a fresh variable mapping built from the request.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from .config import DEFAULT_LANDLORD_NAME
from .models import EmailTemplate, NotificationRequest, RenderedEmail, SMSTemplate

PLACEHOLDER = re.compile(r"\{\{([^{}]*)\}\}")

_STYLE = """
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { background-color: %(header)s; padding: 20px; border-radius: 5px; }
        .content { padding: 20px; }
        .amount { font-size: 24px; font-weight: bold; color: #d63031; }"""


def _html(heading: str, content: str, header_color: str = "#f8f9fa") -> str:
    style = _STYLE % {"header": header_color}
    return f"""<!DOCTYPE html>
<html>
<head>
    <style>{style}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h2>{heading}</h2>
        </div>
        <div class="content">
{content}
        </div>
    </div>
</body>
</html>"""


GENERIC_EMAIL_TEMPLATE = EmailTemplate(
    subject="{{title}}",
    html_body=_html(
        "{{title}}",
        """            <p>Hello {{recipient_name}},</p>
            <p>{{message}}</p>
            <p>Date: {{date}} at {{time}}</p>""",
    ),
    text_body="""{{title}}

Hello {{recipient_name}},

{{message}}

Date: {{date}} at {{time}}""",
)

EMAIL_TEMPLATES: Dict[str, EmailTemplate] = {
    "maintenance_request": EmailTemplate(
        subject="New Maintenance Request - {{title}}",
        html_body=_html(
            "Maintenance Request",
            """            <p>Hello {{recipient_name}},</p>
            <p>A new maintenance request has been submitted:</p>
            <h3>{{title}}</h3>
            <p>{{message}}</p>
            <p><strong>Priority:</strong> {{priority}}</p>
            <p><strong>Category:</strong> {{category}}</p>
            <p><strong>Date:</strong> {{date}} at {{time}}</p>
            <p>Please review and take appropriate action.</p>""",
        ),
        text_body="""Maintenance Request

Hello {{recipient_name}},

A new maintenance request has been submitted:

{{title}}

{{message}}

Priority: {{priority}}
Category: {{category}}
Date: {{date}} at {{time}}

Please review and take appropriate action.""",
    ),
    "maintenance_emergency": EmailTemplate(
        subject="URGENT: Emergency Maintenance - {{title}}",
        html_body=_html(
            "Emergency Maintenance",
            """            <p>Hello {{recipient_name}},</p>
            <p>An emergency maintenance issue has been reported at {{property_name}}:</p>
            <h3>{{title}}</h3>
            <p>{{message}}</p>
            <p><strong>Reported:</strong> {{date}} at {{time}}</p>
            <p>Please respond immediately.</p>""",
            header_color="#f8d7da",
        ),
        text_body="""Emergency Maintenance

Hello {{recipient_name}},

An emergency maintenance issue has been reported at {{property_name}}:

{{title}}

{{message}}

Reported: {{date}} at {{time}}

Please respond immediately.""",
    ),
    "payment_due": EmailTemplate(
        subject="Payment Due Reminder",
        html_body=_html(
            "Payment Due Reminder",
            """            <p>Hello {{recipient_name}},</p>
            <p>This is a friendly reminder that your payment is due:</p>
            <p class="amount">Amount: ${{amount}}</p>
            <p><strong>Due Date:</strong> {{due_date}}</p>
            <p><strong>Property:</strong> {{property_name}}</p>
            <p>Please ensure your payment is submitted on time to avoid any late fees.</p>""",
            header_color="#fff3cd",
        ),
        text_body="""Payment Due Reminder

Hello {{recipient_name}},

This is a friendly reminder that your payment is due:

Amount: ${{amount}}
Due Date: {{due_date}}
Property: {{property_name}}

Please ensure your payment is submitted on time to avoid any late fees.""",
    ),
    "payment_overdue": EmailTemplate(
        subject="Payment Overdue - {{property_name}}",
        html_body=_html(
            "Payment Overdue",
            """            <p>Hello {{recipient_name}},</p>
            <p>Our records show that the following payment is overdue:</p>
            <p class="amount">Amount: ${{amount}}</p>
            <p><strong>Due Date:</strong> {{due_date}}</p>
            <p><strong>Property:</strong> {{property_name}}</p>
            <p>Please contact {{landlord_name}} as soon as possible.</p>""",
            header_color="#f8d7da",
        ),
        text_body="""Payment Overdue

Hello {{recipient_name}},

Our records show that the following payment is overdue:

Amount: ${{amount}}
Due Date: {{due_date}}
Property: {{property_name}}

Please contact {{landlord_name}} as soon as possible.""",
    ),
}

GENERIC_SMS_TEMPLATE = SMSTemplate(message="{{title}}: {{message}}")

SMS_TEMPLATES: Dict[str, SMSTemplate] = {
    "maintenance_emergency": SMSTemplate(
        message="URGENT: Emergency maintenance request at {{property_name}}. Please respond immediately.",
    ),
    "payment_overdue": SMSTemplate(
        message="Payment overdue: ${{amount}} due for {{property_name}}. Please contact us immediately.",
    ),
}


def format_date(moment: datetime) -> str:
    return f"{moment:%B} {moment.day}, {moment.year}"


def format_time(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment:%M %p}"


def base_variables(
    request: NotificationRequest,
    now: Optional[datetime] = None,
    landlord_name: str = DEFAULT_LANDLORD_NAME,
) -> Dict[str, str]:
    """Variables every template may rely on, merged with the caller's own."""
    moment = now or datetime.now(timezone.utc)
    variables = {
        "title": request.title,
        "message": request.message,
        "type": request.type,
        "priority": request.priority,
        "recipient_name": request.recipient_role,
        "landlord_name": landlord_name,
        "date": format_date(moment),
        "time": format_time(moment),
    }
    variables.update(request.variables)
    return variables


def resolve_email_template(
    notification_type: str,
    request: NotificationRequest,
    now: Optional[datetime] = None,
    landlord_name: str = DEFAULT_LANDLORD_NAME,
) -> EmailTemplate:
    template = EMAIL_TEMPLATES.get(notification_type, GENERIC_EMAIL_TEMPLATE)
    return EmailTemplate(
        subject=template.subject,
        html_body=template.html_body,
        text_body=template.text_body,
        variables=base_variables(request, now, landlord_name),
    )


def resolve_sms_template(
    notification_type: str,
    request: NotificationRequest,
    now: Optional[datetime] = None,
    landlord_name: str = DEFAULT_LANDLORD_NAME,
) -> SMSTemplate:
    template = SMS_TEMPLATES.get(notification_type, GENERIC_SMS_TEMPLATE)
    return SMSTemplate(message=template.message, variables=base_variables(request, now, landlord_name))


def render(template: str, variables: Mapping[str, str]) -> str:
    """Fill ``{{key}}`` placeholders; unknown keys are left as written.

    Substitution is a single pass, so values are never scanned for further
    placeholders.
    """

    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return PLACEHOLDER.sub(_replace, template)


def render_email(template: EmailTemplate) -> RenderedEmail:
    return RenderedEmail(
        subject=render(template.subject, template.variables),
        html_body=render(template.html_body, template.variables),
        text_body=render(template.text_body, template.variables),
    )


def render_sms(template: SMSTemplate) -> str:
    return render(template.message, template.variables)
