from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

import boto3
import requests
from botocore.config import Config as BotoConfig

from .config import NotificationSettings
from .errors import ConfigurationError, TransportError, wrap_transport_errors
from .models import CHANNEL_EMAIL, CHANNEL_SMS

LOGGER = logging.getLogger(__name__)


def _boto_config(timeout: float) -> BotoConfig:
    # No retries: a single attempt bounded by the timeout must fit the dispatch deadline.
    return BotoConfig(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"max_attempts": 1, "mode": "standard"},
    )


class EmailTransport(Protocol):
    def send(
        self,
        from_address: str,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
        timeout: Optional[float] = None,
    ) -> None:
        ...


class SMSTransport(Protocol):
    def send(self, phone_number: str, message: str, timeout: Optional[float] = None) -> None:
        ...


class SmtpEmailTransport:
    """Send email through an SMTP relay, one connection per message."""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _connection(self, timeout: float) -> smtplib.SMTP:
        server = smtplib.SMTP(self.host, self.port, timeout=timeout)
        try:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
        except Exception:
            server.quit()
            raise
        return server

    @wrap_transport_errors(CHANNEL_EMAIL)
    def send(
        self,
        from_address: str,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
        timeout: Optional[float] = None,
    ) -> None:
        if not self.host:
            raise TransportError(CHANNEL_EMAIL, "SMTP_HOST not configured")

        email = EmailMessage()
        email["Subject"] = subject
        email["From"] = from_address
        email["To"] = to_address
        email.set_content(text_body)
        if html_body:
            email.add_alternative(html_body, subtype="html")

        with self._connection(timeout or self.timeout) as server:
            server.send_message(email)
        LOGGER.info("Sent email '%s' to %s via SMTP", subject, to_address)


class SesEmailTransport:
    """Send email through AWS SES."""

    def __init__(self, client=None, region: str = "us-east-1", timeout: float = 10.0) -> None:
        self.client = client or boto3.client(
            "ses",
            region_name=region,
            config=_boto_config(timeout),
        )

    @wrap_transport_errors(CHANNEL_EMAIL)
    def send(
        self,
        from_address: str,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
        timeout: Optional[float] = None,
    ) -> None:
        self.client.send_email(
            Source=from_address,
            Destination={"ToAddresses": [to_address]},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {
                    "Html": {"Data": html_body, "Charset": "UTF-8"},
                    "Text": {"Data": text_body, "Charset": "UTF-8"},
                },
            },
        )
        LOGGER.info("Sent email '%s' to %s via SES", subject, to_address)


class HttpSmsTransport:
    """Post SMS messages to a JSON HTTP gateway."""

    def __init__(
        self,
        url: Optional[str],
        token: Optional[str] = None,
        sender_id: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = url
        self.token = token
        self.sender_id = sender_id
        self.timeout = timeout

    @wrap_transport_errors(CHANNEL_SMS)
    def send(self, phone_number: str, message: str, timeout: Optional[float] = None) -> None:
        if not self.url:
            raise TransportError(CHANNEL_SMS, "SMS_GATEWAY_URL not configured")

        payload = {"to": phone_number, "message": message}
        if self.sender_id:
            payload["from"] = self.sender_id
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        resp = requests.post(self.url, json=payload, headers=headers, timeout=timeout or self.timeout)
        if resp.status_code >= 400:
            LOGGER.error("SMS gateway responded with %s: %s", resp.status_code, resp.text[:120])
            raise TransportError(CHANNEL_SMS, f"gateway responded with {resp.status_code}")
        LOGGER.info("Sent SMS to %s via gateway", phone_number)


class SnsSmsTransport:
    """Publish transactional SMS messages through AWS SNS."""

    def __init__(self, client=None, region: str = "us-east-1", timeout: float = 10.0) -> None:
        self.client = client or boto3.client(
            "sns",
            region_name=region,
            config=_boto_config(timeout),
        )

    @wrap_transport_errors(CHANNEL_SMS)
    def send(self, phone_number: str, message: str, timeout: Optional[float] = None) -> None:
        self.client.publish(
            PhoneNumber=phone_number,
            Message=message,
            MessageAttributes={
                "AWS.SNS.SMS.SMSType": {"DataType": "String", "StringValue": "Transactional"},
            },
        )
        LOGGER.info("Sent SMS to %s via SNS", phone_number)


def build_email_transport(settings: NotificationSettings) -> EmailTransport:
    if settings.email_backend == "ses":
        return SesEmailTransport(region=settings.ses_region, timeout=settings.transport_timeout)
    if settings.email_backend == "smtp":
        return SmtpEmailTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.transport_timeout,
        )
    raise ConfigurationError(f"Unknown email backend {settings.email_backend!r}")


def build_sms_transport(settings: NotificationSettings) -> Optional[SMSTransport]:
    if settings.sms_backend == "none":
        return None
    if settings.sms_backend == "sns":
        return SnsSmsTransport(region=settings.sns_region, timeout=settings.transport_timeout)
    if settings.sms_backend == "http":
        return HttpSmsTransport(
            url=settings.sms_gateway_url,
            token=settings.sms_gateway_token,
            sender_id=settings.sms_sender_id,
            timeout=settings.transport_timeout,
        )
    raise ConfigurationError(f"Unknown SMS backend {settings.sms_backend!r}")
