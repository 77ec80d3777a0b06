from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, List

from celery import shared_task

from .config import load_settings
from .errors import NotificationError
from .models import NotificationRequest
from .service import NotificationService

LOGGER = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_service() -> NotificationService:
    return NotificationService.from_settings(load_settings())


@shared_task(name="notifications.tasks.send_notification")
def send_notification(payload: Dict) -> Dict:
    request = NotificationRequest.from_dict(payload)
    try:
        result = get_service().dispatch(request)
    except NotificationError:
        LOGGER.exception("Failed to send '%s' notification to %s", request.type, request.recipient_id)
        raise
    return result.to_dict()


@shared_task(name="notifications.tasks.send_bulk_notifications")
def send_bulk_notifications(payloads: List[Dict]) -> List[Dict]:
    requests = [NotificationRequest.from_dict(payload) for payload in payloads]
    report = get_service().dispatch_all_detailed(requests)
    LOGGER.info("Sent %d of %d bulk notifications", report.sent_count, len(requests))
    return [item.to_dict() for item in report.items]
