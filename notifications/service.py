from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .channels import EmailTransport, SMSTransport, build_email_transport, build_sms_transport
from .config import DEFAULT_LANDLORD_NAME, DEFAULT_TRANSPORT_TIMEOUT, RECIPIENT_ROLES, NotificationSettings
from .errors import ConfigurationError, NotificationError, TransportError, ValidationError
from .models import (
    CHANNEL_EMAIL,
    CHANNEL_SMS,
    STATUS_FAILED,
    STATUS_SENT,
    STATUS_SKIPPED,
    BulkItemOutcome,
    BulkReport,
    ChannelOutcome,
    NotificationRequest,
    NotificationResult,
)
from .routing import route
from .templates import render_email, render_sms, resolve_email_template, resolve_sms_template

LOGGER = logging.getLogger(__name__)


def validate_request(request: NotificationRequest) -> None:
    email = (request.recipient_email or "").strip()
    if not email or "@" not in email:
        raise ValidationError("recipient_email is required", field="recipient_email")
    if not request.recipient_id:
        raise ValidationError("recipient_id is required", field="recipient_id")
    if request.recipient_role not in RECIPIENT_ROLES:
        raise ValidationError(
            f"recipient_role must be one of {sorted(RECIPIENT_ROLES)}", field="recipient_role"
        )


class NotificationService:
    """Route, render and send notifications over email and SMS.

    Email is the channel of record: its failure fails the request. SMS is
    best effort and its failures are logged and reported on the result only.
    """

    def __init__(
        self,
        email_transport: EmailTransport,
        sms_transport: Optional[SMSTransport],
        from_address: str,
        *,
        landlord_name: str = DEFAULT_LANDLORD_NAME,
        timeout: float = DEFAULT_TRANSPORT_TIMEOUT,
        max_workers: int = 1,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if not from_address:
            raise ConfigurationError("A sender address (NOTIFY_FROM_EMAIL) is required")
        self.email_transport = email_transport
        self.sms_transport = sms_transport
        self.from_address = from_address
        self.landlord_name = landlord_name
        self.timeout = timeout
        self.max_workers = max(1, max_workers)
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> "NotificationService":
        return cls(
            build_email_transport(settings),
            build_sms_transport(settings),
            settings.from_email or "",
            landlord_name=settings.landlord_name,
            timeout=settings.transport_timeout,
            max_workers=settings.bulk_workers,
        )

    def _time_left(self, channel: str, deadline: Optional[float]) -> float:
        if deadline is None:
            return self.timeout
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TransportError(channel, "deadline exceeded before send")
        return min(remaining, self.timeout)

    def _send_email(self, request: NotificationRequest, now: datetime, deadline: Optional[float]) -> None:
        template = resolve_email_template(request.type, request, now, self.landlord_name)
        rendered = render_email(template)
        self.email_transport.send(
            self.from_address,
            request.recipient_email,
            rendered.subject,
            rendered.html_body,
            rendered.text_body,
            timeout=self._time_left(CHANNEL_EMAIL, deadline),
        )

    def _send_sms(self, request: NotificationRequest, now: datetime, deadline: Optional[float]) -> ChannelOutcome:
        if not request.recipient_phone:
            return ChannelOutcome(CHANNEL_SMS, STATUS_SKIPPED, "no recipient phone")
        if self.sms_transport is None:
            return ChannelOutcome(CHANNEL_SMS, STATUS_SKIPPED, "SMS transport not configured")

        template = resolve_sms_template(request.type, request, now, self.landlord_name)
        try:
            self.sms_transport.send(
                request.recipient_phone,
                render_sms(template),
                timeout=self._time_left(CHANNEL_SMS, deadline),
            )
        except TransportError as exc:
            LOGGER.warning("SMS for '%s' to %s failed: %s", request.type, request.recipient_id, exc)
            return ChannelOutcome(CHANNEL_SMS, STATUS_FAILED, str(exc))
        except Exception as exc:
            LOGGER.exception("Unexpected SMS failure for '%s' to %s", request.type, request.recipient_id)
            return ChannelOutcome(CHANNEL_SMS, STATUS_FAILED, str(exc))
        return ChannelOutcome(CHANNEL_SMS, STATUS_SENT)

    def dispatch(self, request: NotificationRequest, deadline: Optional[float] = None) -> NotificationResult:
        """Deliver one request and return its authoritative result.

        ``deadline`` is an absolute ``time.monotonic()`` value bounding both
        transport calls. Raises ValidationError for a malformed request and
        TransportError when email cannot be sent.
        """
        validate_request(request)
        plan = route(request.priority, request.type)
        now = self.clock()

        self._send_email(request, now, deadline)
        outcomes = [ChannelOutcome(CHANNEL_EMAIL, STATUS_SENT)]
        if plan.includes_sms:
            outcomes.append(self._send_sms(request, now, deadline))

        LOGGER.info(
            "Dispatched '%s' notification to %s (%s, plan=%s)",
            request.type,
            request.recipient_id,
            request.priority,
            plan.value,
        )
        return NotificationResult(status=STATUS_SENT, channel=CHANNEL_EMAIL, sent_at=now, channels=outcomes)

    send_notification = dispatch

    def _dispatch_item(self, index: int, request: NotificationRequest, deadline: Optional[float]) -> BulkItemOutcome:
        try:
            result = self.dispatch(request, deadline)
        except NotificationError as exc:
            LOGGER.warning("Skipping bulk notification #%d for %s: %s", index, request.recipient_id, exc)
            return BulkItemOutcome(index=index, request=request, error=exc)
        except Exception as exc:  # a broken transport must not abort the batch
            LOGGER.exception("Unexpected failure dispatching bulk notification #%d", index)
            return BulkItemOutcome(index=index, request=request, error=exc)
        return BulkItemOutcome(index=index, request=request, result=result)

    def dispatch_all_detailed(
        self, requests: Iterable[NotificationRequest], deadline: Optional[float] = None
    ) -> BulkReport:
        """Dispatch every request, keeping each item's outcome in input order."""
        items = list(enumerate(requests))
        if self.max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes = list(pool.map(lambda item: self._dispatch_item(item[0], item[1], deadline), items))
        else:
            outcomes = [self._dispatch_item(index, request, deadline) for index, request in items]

        report = BulkReport(items=outcomes)
        LOGGER.info("Bulk dispatch finished: %d sent, %d failed", report.sent_count, report.failed_count)
        return report

    def dispatch_all(
        self, requests: Iterable[NotificationRequest], deadline: Optional[float] = None
    ) -> List[NotificationResult]:
        return self.dispatch_all_detailed(requests, deadline).results

    send_bulk_notifications = dispatch_all

    def send_maintenance_notification(
        self,
        maintenance: Mapping[str, Any],
        recipient_role: str,
        recipient_email: str,
        recipient_phone: str = "",
    ) -> NotificationResult:
        variables = {
            key: str(maintenance[key])
            for key in ("category", "property_name")
            if maintenance.get(key) is not None
        }
        request = NotificationRequest(
            type="maintenance_request",
            title=str(maintenance.get("title") or ""),
            message=str(maintenance.get("description") or ""),
            tenant_scope_id=str(maintenance.get("landlord_id") or ""),
            recipient_id=str(maintenance.get("tenant_id") or ""),
            recipient_role=recipient_role,
            recipient_email=recipient_email,
            recipient_phone=recipient_phone,
            related_entity_id=str(maintenance["id"]) if maintenance.get("id") else None,
            related_entity_type="maintenance_request",
            priority=str(maintenance.get("priority") or "medium"),
            variables=variables,
        )
        return self.dispatch(request)

    def send_payment_notification(
        self,
        payment: Mapping[str, Any],
        recipient_role: str,
        recipient_email: str,
        recipient_phone: str = "",
    ) -> NotificationResult:
        amount = float(payment.get("amount") or 0)
        variables = {"amount": f"{amount:.2f}"}
        for key in ("due_date", "property_name"):
            if payment.get(key) is not None:
                variables[key] = str(payment[key])
        request = NotificationRequest(
            type="payment_due",
            title="Payment Due",
            message=f"Payment of ${amount:.2f} is due for your property",
            tenant_scope_id=str(payment.get("landlord_id") or ""),
            recipient_id=str(payment.get("tenant_id") or ""),
            recipient_role=recipient_role,
            recipient_email=recipient_email,
            recipient_phone=recipient_phone,
            related_entity_id=str(payment["id"]) if payment.get("id") else None,
            related_entity_type="payment",
            priority="medium",
            variables=variables,
        )
        return self.dispatch(request)
