from __future__ import annotations

from enum import Enum
from typing import Optional

from .config import CRITICAL_TYPES


class ChannelPlan(str, Enum):
    """Which channels a request goes out on."""

    EMAIL_ONLY = "email_only"
    EMAIL_AND_OPPORTUNISTIC_SMS = "email_and_opportunistic_sms"
    EMAIL_AND_MANDATORY_SMS = "email_and_mandatory_sms"

    @property
    def includes_sms(self) -> bool:
        return self is not ChannelPlan.EMAIL_ONLY


def is_critical_type(notification_type: Optional[str]) -> bool:
    return notification_type in CRITICAL_TYPES


def route(priority: Optional[str], notification_type: Optional[str]) -> ChannelPlan:
    """Pick the channel plan for a priority and notification type.

    Email always goes out. Urgent requests also text the recipient; high
    priority only does so for critical types. Missing or unknown priorities
    are email only.
    """
    if priority == "urgent":
        return ChannelPlan.EMAIL_AND_MANDATORY_SMS
    if priority == "high" and is_critical_type(notification_type):
        return ChannelPlan.EMAIL_AND_OPPORTUNISTIC_SMS
    return ChannelPlan.EMAIL_ONLY
