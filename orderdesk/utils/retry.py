import functools
import logging
import time
from typing import Callable, Optional, TypeVar

from ..core.exceptions import ConflictError
from ..config.settings import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_conflict_retry(
    func: Callable[..., T],
    *args,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    **kwargs,
) -> T:
    """
    Call ``func``, retrying when it raises ConflictError.

    Each attempt must start its own transaction; the services roll back
    before raising, so calling again on the same session is safe. The last
    ConflictError propagates once ``attempts`` are used up.
    """
    settings = get_settings()
    attempts = settings.CONFLICT_RETRY_ATTEMPTS if attempts is None else attempts
    delay = settings.CONFLICT_RETRY_DELAY if delay is None else delay

    for attempt in range(1, max(attempts, 1) + 1):
        try:
            return func(*args, **kwargs)
        except ConflictError as e:
            if attempt >= attempts:
                logger.warning(f"{func.__name__} gave up after {attempt} conflicting attempts: {e}")
                raise
            logger.info(f"{func.__name__} hit a conflict (attempt {attempt}/{attempts}), retrying")
            if delay:
                time.sleep(delay * (2 ** (attempt - 1)))


def retry_on_conflict(attempts: Optional[int] = None, delay: Optional[float] = None):
    """Decorator form of call_with_conflict_retry."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return call_with_conflict_retry(func, *args, attempts=attempts, delay=delay, **kwargs)
        return wrapper
    return decorator
