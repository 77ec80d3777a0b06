"""Shared configuration defaults for the notification system."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigurationError

PRIORITIES = ("low", "medium", "high", "urgent")
DEFAULT_PRIORITY = "medium"
RECIPIENT_ROLES = {"landlord", "tenant", "contractor"}

# Types severe enough to text the recipient at "high" priority.
CRITICAL_TYPES = frozenset(
    {
        "maintenance_emergency",
        "payment_overdue",
        "lease_violation",
        "property_damage",
        "security_breach",
    }
)

VALID_EMAIL_BACKENDS = {"smtp", "ses"}
VALID_SMS_BACKENDS = {"http", "sns", "none"}

DEFAULT_LANDLORD_NAME = "Property Management"
DEFAULT_REGION = "us-east-1"
DEFAULT_TRANSPORT_TIMEOUT = 10.0


@dataclass(slots=True)
class NotificationSettings:
    """Runtime settings for building transports and the dispatch service."""

    from_email: Optional[str] = None
    email_backend: str = "smtp"
    sms_backend: str = "none"
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    sms_gateway_url: Optional[str] = None
    sms_gateway_token: Optional[str] = None
    sms_sender_id: Optional[str] = None
    ses_region: str = DEFAULT_REGION
    sns_region: str = DEFAULT_REGION
    transport_timeout: float = DEFAULT_TRANSPORT_TIMEOUT
    bulk_workers: int = 1
    landlord_name: str = DEFAULT_LANDLORD_NAME


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value not in {"0", "false", "False", "no"}


def _number(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from exc


def load_settings(environ: Optional[Mapping[str, str]] = None) -> NotificationSettings:
    env = os.environ if environ is None else environ

    email_backend = (env.get("NOTIFY_EMAIL_BACKEND") or "smtp").lower()
    if email_backend not in VALID_EMAIL_BACKENDS:
        raise ConfigurationError(f"Unknown email backend {email_backend!r}")
    sms_backend = (env.get("NOTIFY_SMS_BACKEND") or "none").lower()
    if sms_backend not in VALID_SMS_BACKENDS:
        raise ConfigurationError(f"Unknown SMS backend {sms_backend!r}")

    region = env.get("AWS_REGION") or DEFAULT_REGION
    workers = _number(env, "NOTIFY_BULK_WORKERS", 1, int)
    if workers < 1:
        raise ConfigurationError("NOTIFY_BULK_WORKERS must be at least 1")
    timeout = _number(env, "NOTIFY_TRANSPORT_TIMEOUT", DEFAULT_TRANSPORT_TIMEOUT, float)
    if timeout <= 0:
        raise ConfigurationError("NOTIFY_TRANSPORT_TIMEOUT must be greater than 0")

    return NotificationSettings(
        from_email=env.get("NOTIFY_FROM_EMAIL") or env.get("SES_FROM_EMAIL") or None,
        email_backend=email_backend,
        sms_backend=sms_backend,
        smtp_host=env.get("SMTP_HOST") or None,
        smtp_port=_number(env, "SMTP_PORT", 587, int),
        smtp_username=env.get("SMTP_USERNAME") or None,
        smtp_password=env.get("SMTP_PASSWORD") or None,
        smtp_use_tls=_flag(env.get("SMTP_USE_TLS"), True),
        sms_gateway_url=env.get("SMS_GATEWAY_URL") or None,
        sms_gateway_token=env.get("SMS_GATEWAY_TOKEN") or None,
        sms_sender_id=env.get("SMS_SENDER_ID") or None,
        ses_region=env.get("SES_REGION") or region,
        sns_region=env.get("SNS_REGION") or region,
        transport_timeout=timeout,
        bulk_workers=workers,
        landlord_name=env.get("NOTIFY_LANDLORD_NAME") or DEFAULT_LANDLORD_NAME,
    )
