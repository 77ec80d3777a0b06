import time

import pytest

from conftest import FIXED_NOW, FakeEmailTransport, FakeSMSTransport, make_request
from notifications.errors import ConfigurationError, TransportError, ValidationError
from notifications.service import NotificationService


@pytest.mark.parametrize("priority", ["low", "medium", "", "bogus"])
def test_regular_priorities_never_send_sms(service, email_transport, sms_transport, priority):
    request = make_request(type="maintenance_emergency", priority=priority, recipient_phone="+15551234567")

    result = service.dispatch(request)

    assert result.status == "sent"
    assert len(email_transport.calls) == 1
    assert sms_transport.calls == []
    assert [outcome.channel for outcome in result.channels] == ["email"]


def test_high_priority_critical_type_sends_both(service, email_transport, sms_transport):
    request = make_request(
        type="maintenance_emergency",
        priority="high",
        recipient_phone="+15551234567",
        variables={"property_name": "Unit 4B"},
    )

    result = service.dispatch(request)

    assert result.status == "sent"
    assert result.channel == "email"
    assert result.sms_delivered
    assert email_transport.calls[0]["from"] == "noreply@dwell.test"
    assert email_transport.calls[0]["to"] == "a@b.com"
    assert email_transport.calls[0]["subject"] == "URGENT: Emergency Maintenance - Leaking sink"
    assert sms_transport.calls == [
        {
            "to": "+15551234567",
            "message": "URGENT: Emergency maintenance request at Unit 4B. Please respond immediately.",
            "timeout": 10.0,
        }
    ]


def test_high_priority_without_phone_skips_sms(service, email_transport, sms_transport):
    request = make_request(type="payment_overdue", priority="high", recipient_phone="")

    result = service.dispatch(request)

    assert result.status == "sent"
    assert len(email_transport.calls) == 1
    assert sms_transport.calls == []
    assert result.outcome_for("sms").status == "skipped"


def test_high_priority_regular_type_is_email_only(service, sms_transport):
    service.dispatch(make_request(priority="high", recipient_phone="+15551234567"))
    assert sms_transport.calls == []


def test_sms_failure_is_invisible_to_caller(email_transport):
    sms = FakeSMSTransport(fail=True)
    service = NotificationService(email_transport, sms, "noreply@dwell.test", clock=lambda: FIXED_NOW)
    request = make_request(type="maintenance_emergency", priority="high", recipient_phone="+15551234567")

    result = service.dispatch(request)

    assert result.status == "sent"
    assert result.channel == "email"
    assert len(sms.calls) == 1
    assert not result.sms_delivered
    assert "carrier rejected message" in result.outcome_for("sms").error


@pytest.mark.parametrize("phone, sms_calls", [("+15551234567", 1), ("", 0)])
def test_urgent_sends_sms_when_phone_present(service, email_transport, sms_transport, phone, sms_calls):
    result = service.dispatch(make_request(priority="urgent", recipient_phone=phone))

    assert result.status == "sent"
    assert len(email_transport.calls) == 1
    assert len(sms_transport.calls) == sms_calls


def test_urgent_sms_failure_keeps_status_sent(email_transport):
    service = NotificationService(email_transport, FakeSMSTransport(fail=True), "noreply@dwell.test")
    result = service.dispatch(make_request(priority="urgent", recipient_phone="+15551234567"))
    assert result.status == "sent"


def test_urgent_without_sms_transport_is_skipped(email_transport):
    service = NotificationService(email_transport, None, "noreply@dwell.test")
    result = service.dispatch(make_request(priority="urgent", recipient_phone="+15551234567"))

    assert result.status == "sent"
    assert result.outcome_for("sms").status == "skipped"


def test_email_failure_is_fatal(sms_transport):
    email = FakeEmailTransport(fail_for={"a@b.com"})
    service = NotificationService(email, sms_transport, "noreply@dwell.test")

    with pytest.raises(TransportError) as error:
        service.dispatch(make_request(priority="urgent", recipient_phone="+15551234567"))

    assert error.value.channel == "email"
    assert sms_transport.calls == []


def test_unknown_type_uses_generic_template(service, email_transport, sms_transport):
    result = service.dispatch(make_request(type="xyz", priority="low"))

    assert result.status == "sent"
    assert email_transport.calls[0]["subject"] == "Leaking sink"
    assert "Date: March 5, 2024 at 2:07 PM" in email_transport.calls[0]["text"]
    assert sms_transport.calls == []


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"recipient_email": ""}, "recipient_email"),
        ({"recipient_email": "not-an-address"}, "recipient_email"),
        ({"recipient_id": ""}, "recipient_id"),
        ({"recipient_role": "visitor"}, "recipient_role"),
    ],
)
def test_malformed_requests_are_rejected(service, email_transport, overrides, field):
    with pytest.raises(ValidationError) as error:
        service.dispatch(make_request(**overrides))

    assert error.value.field == field
    assert email_transport.calls == []


def test_expired_deadline_fails_email(service, email_transport):
    with pytest.raises(TransportError):
        service.dispatch(make_request(), deadline=time.monotonic() - 1)
    assert email_transport.calls == []


def test_deadline_caps_transport_timeout(service, email_transport):
    service.dispatch(make_request(), deadline=time.monotonic() + 2)
    assert 0 < email_transport.calls[0]["timeout"] <= 2


def test_service_requires_sender_address(email_transport):
    with pytest.raises(ConfigurationError):
        NotificationService(email_transport, None, "")


def test_result_serialises_channel_outcomes(service):
    result = service.dispatch(make_request(priority="urgent", recipient_phone="+15551234567"))
    payload = result.to_dict()

    assert payload["notification_id"] == result.id
    assert payload["status"] == "sent"
    assert payload["channel"] == "email"
    assert payload["channels"] == [
        {"channel": "email", "status": "sent", "error": None},
        {"channel": "sms", "status": "sent", "error": None},
    ]


def test_send_maintenance_notification(service, email_transport):
    maintenance = {
        "id": "mr-9",
        "title": "Broken heater",
        "description": "No heat in bedroom",
        "landlord_id": "landlord-1",
        "tenant_id": "tenant-7",
        "priority": "medium",
        "category": "hvac",
    }

    result = service.send_maintenance_notification(maintenance, "landlord", "owner@dwell.test")

    assert result.status == "sent"
    sent = email_transport.calls[0]
    assert sent["subject"] == "New Maintenance Request - Broken heater"
    assert "Category: hvac" in sent["text"]
    assert "Priority: medium" in sent["text"]


def test_send_payment_notification(service, email_transport):
    payment = {"id": "pay-1", "amount": 950, "landlord_id": "landlord-1", "tenant_id": "tenant-7"}

    service.send_payment_notification(payment, "tenant", "tenant@dwell.test")

    sent = email_transport.calls[0]
    assert sent["subject"] == "Payment Due Reminder"
    assert "Amount: $950.00" in sent["text"]
    assert "Due Date: {{due_date}}" in sent["text"]


def test_unexpected_sms_exception_is_swallowed(email_transport):
    class BrokenSMSTransport:
        def __init__(self):
            self.calls = 0

        def send(self, phone_number, message, timeout=None):
            self.calls += 1
            raise RuntimeError("gateway client crashed")

    sms = BrokenSMSTransport()
    service = NotificationService(email_transport, sms, "noreply@dwell.test")

    result = service.dispatch(make_request(priority="urgent", recipient_phone="+15551234567"))

    assert result.status == "sent"
    assert result.channel == "email"
    assert len(email_transport.calls) == 1
    assert sms.calls == 1
    assert result.outcome_for("sms").status == "failed"
    assert result.outcome_for("sms").error == "gateway client crashed"


def test_sent_at_comes_from_service_clock(service):
    result = service.dispatch(make_request())
    assert result.sent_at == FIXED_NOW
