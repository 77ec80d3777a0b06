from __future__ import annotations

import logging
import smtplib
from functools import wraps
from typing import Callable, Optional, TypeVar

import botocore.exceptions
from requests import RequestException

LOGGER = logging.getLogger(__name__)

RetType = TypeVar("RetType")


class NotificationError(Exception):
    """Base error for the notification dispatch engine."""


class ConfigurationError(NotificationError):
    """Settings are missing or malformed."""


class ValidationError(NotificationError):
    """The request cannot be dispatched as given."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)


class TransportError(NotificationError):
    """A channel transport failed to hand the message over."""

    def __init__(self, channel: str, message: str) -> None:
        self.channel = channel
        super().__init__(f"{channel}: {message}")


def wrap_transport_errors(channel: str) -> Callable[[Callable[..., RetType]], Callable[..., RetType]]:
    """Wrap SDK, HTTP and SMTP failures into TransportError for ``channel``."""

    def decorator(func: Callable[..., RetType]) -> Callable[..., RetType]:
        @wraps(func)
        def _wrapper(*args, **kwargs) -> RetType:
            try:
                return func(*args, **kwargs)
            except TransportError:
                raise
            except botocore.exceptions.ClientError as exc:
                raise TransportError(channel, f"AWS client error. {exc}") from exc
            except botocore.exceptions.BotoCoreError as exc:
                LOGGER.exception("Boto3 SDK error in %s.", func.__name__)
                raise TransportError(channel, f"Boto3 SDK error: {exc}") from exc
            except RequestException as exc:
                raise TransportError(channel, f"HTTP error: {exc}") from exc
            except (smtplib.SMTPException, OSError) as exc:
                raise TransportError(channel, f"SMTP error: {exc}") from exc

        return _wrapper

    return decorator
