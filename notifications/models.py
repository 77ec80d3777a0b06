from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .config import DEFAULT_PRIORITY

STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"

CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(slots=True)
class NotificationRequest:
    """A single logical event to deliver to one recipient."""

    type: str
    title: str
    message: str
    tenant_scope_id: str
    recipient_id: str
    recipient_role: str
    recipient_email: str
    recipient_phone: str = ""
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    priority: str = DEFAULT_PRIORITY
    variables: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NotificationRequest":
        """Build a request from the JSON shape upstream handlers post."""
        variables = payload.get("variables") or {}
        related = payload.get("related_entity_id")
        return cls(
            type=_text(payload.get("type")),
            title=_text(payload.get("title")),
            message=_text(payload.get("message")),
            tenant_scope_id=_text(payload.get("tenant_scope_id") or payload.get("landlord_id")),
            recipient_id=_text(payload.get("recipient_id")),
            recipient_role=_text(payload.get("recipient_role") or payload.get("recipient_type")),
            recipient_email=_text(payload.get("recipient_email")),
            recipient_phone=_text(payload.get("recipient_phone")),
            related_entity_id=str(related) if related else None,
            related_entity_type=payload.get("related_entity_type") or None,
            priority=_text(payload.get("priority")) or DEFAULT_PRIORITY,
            variables={str(k): _text(v) for k, v in variables.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "tenant_scope_id": self.tenant_scope_id,
            "recipient_id": self.recipient_id,
            "recipient_role": self.recipient_role,
            "recipient_email": self.recipient_email,
            "recipient_phone": self.recipient_phone,
            "related_entity_id": self.related_entity_id,
            "related_entity_type": self.related_entity_type,
            "priority": self.priority,
            "variables": dict(self.variables),
        }


@dataclass(frozen=True, slots=True)
class EmailTemplate:
    subject: str
    html_body: str
    text_body: str
    variables: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SMSTemplate:
    message: str
    variables: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RenderedEmail:
    subject: str
    html_body: str
    text_body: str


@dataclass(slots=True)
class ChannelOutcome:
    """What happened on one channel while dispatching a request."""

    channel: str
    status: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"channel": self.channel, "status": self.status, "error": self.error}


@dataclass(slots=True)
class NotificationResult:
    """The authoritative outcome of one dispatched request."""

    status: str
    channel: str = CHANNEL_EMAIL
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    channels: List[ChannelOutcome] = field(default_factory=list)

    def outcome_for(self, channel: str) -> Optional[ChannelOutcome]:
        for outcome in self.channels:
            if outcome.channel == channel:
                return outcome
        return None

    @property
    def sms_delivered(self) -> bool:
        outcome = self.outcome_for(CHANNEL_SMS)
        return outcome is not None and outcome.status == STATUS_SENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notification_id": self.id,
            "status": self.status,
            "sent_at": self.sent_at.isoformat(),
            "channel": self.channel,
            "channels": [outcome.to_dict() for outcome in self.channels],
        }


@dataclass(slots=True)
class BulkItemOutcome:
    index: int
    request: NotificationRequest
    result: Optional[NotificationResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "status": STATUS_SENT if self.ok else STATUS_FAILED,
            "notification_id": self.result.id if self.result else None,
            "error": str(self.error) if self.error else None,
        }


@dataclass(slots=True)
class BulkReport:
    """Per-item outcomes of a bulk dispatch, in input order."""

    items: List[BulkItemOutcome] = field(default_factory=list)

    @property
    def results(self) -> List[NotificationResult]:
        return [item.result for item in self.items if item.ok]

    @property
    def failures(self) -> List[BulkItemOutcome]:
        return [item for item in self.items if not item.ok]

    @property
    def sent_count(self) -> int:
        return len(self.results)

    @property
    def failed_count(self) -> int:
        return len(self.failures)
