import logging
from typing import Any, Dict, List, Tuple, Union

from ..config.settings import get_settings

logger = logging.getLogger(__name__)

ADMIN_RECIPIENT = "ADMIN"

Recipient = Union[int, str]


class Notifier:
    """Outbound notification port. Delivery is best effort."""

    def notify(self, recipient: Recipient, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes notifications to the application log."""

    def notify(self, recipient: Recipient, payload: Dict[str, Any]) -> None:
        logger.info(f"Notify {recipient}: {payload.get('title')} - {payload.get('body')}")


class NullNotifier(Notifier):
    def notify(self, recipient: Recipient, payload: Dict[str, Any]) -> None:
        return None


class RecordingNotifier(Notifier):
    """Keeps every notification in memory; handy for inspection in tests and the shell."""

    def __init__(self):
        self.sent: List[Tuple[Recipient, Dict[str, Any]]] = []

    def notify(self, recipient: Recipient, payload: Dict[str, Any]) -> None:
        self.sent.append((recipient, payload))


def notify_safely(notifier: Notifier, recipient: Recipient, payload: Dict[str, Any]) -> bool:
    """Send a notification, logging and swallowing any failure."""
    try:
        notifier.notify(recipient, payload)
        return True
    except Exception as e:
        logger.warning(f"Notification to {recipient} failed: {e}", exc_info=True)
        return False


def get_default_notifier() -> Notifier:
    return LogNotifier() if get_settings().NOTIFICATIONS_ENABLED else NullNotifier()
