from datetime import datetime, timezone

import pytest

from notifications.errors import TransportError
from notifications.models import NotificationRequest
from notifications.service import NotificationService

FIXED_NOW = datetime(2024, 3, 5, 14, 7, tzinfo=timezone.utc)


class FakeEmailTransport:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.calls = []

    def send(self, from_address, to_address, subject, html_body, text_body, timeout=None):
        self.calls.append(
            {
                "from": from_address,
                "to": to_address,
                "subject": subject,
                "html": html_body,
                "text": text_body,
                "timeout": timeout,
            }
        )
        if to_address in self.fail_for:
            raise TransportError("email", "mailbox unavailable")


class FakeSMSTransport:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def send(self, phone_number, message, timeout=None):
        self.calls.append({"to": phone_number, "message": message, "timeout": timeout})
        if self.fail:
            raise TransportError("sms", "carrier rejected message")


def make_request(**overrides):
    fields = {
        "type": "maintenance_request",
        "title": "Leaking sink",
        "message": "Water under the kitchen sink",
        "tenant_scope_id": "landlord-1",
        "recipient_id": "tenant-1",
        "recipient_role": "tenant",
        "recipient_email": "a@b.com",
        "recipient_phone": "",
        "priority": "low",
    }
    fields.update(overrides)
    return NotificationRequest(**fields)


@pytest.fixture
def email_transport():
    return FakeEmailTransport()


@pytest.fixture
def sms_transport():
    return FakeSMSTransport()


@pytest.fixture
def service(email_transport, sms_transport):
    return NotificationService(
        email_transport,
        sms_transport,
        "noreply@dwell.test",
        clock=lambda: FIXED_NOW,
    )
