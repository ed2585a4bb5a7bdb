"""Bounded retry with exponential backoff for read-only queries."""

from functools import wraps
from typing import Callable, Tuple, Type, TypeVar
import logging
import time

from django.conf import settings

from shared.domain.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _scheduling_setting(name: str, default):
    return getattr(settings, "SCHEDULING", {}).get(name, default)


def retry_read(
    func: Callable[..., T] | None = None,
    *,
    attempts: int | None = None,
    backoff: float | None = None,
    retry_on: Tuple[Type[BaseException], ...] = (TransientStoreError,),
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Retry ``func`` on transient store errors.

    Only for queries without side effects: a write retried blindly could
    reserve the same slot twice. The last error is re-raised once the
    attempts are used up.
    """

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @wraps(fn)
        def wrapper(*args, **kwargs) -> T:
            max_attempts = attempts or _scheduling_setting("READ_RETRY_ATTEMPTS", 3)
            delay = backoff if backoff is not None else _scheduling_setting("READ_RETRY_BACKOFF_SECONDS", 0.05)
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retry_on as exc:
                    if attempt == max_attempts:
                        logger.error(f"{fn.__name__} failed after {attempt} attempts: {exc}")
                        raise
                    wait = delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"{fn.__name__} attempt {attempt}/{max_attempts} failed ({exc}), retrying in {wait:.2f}s"
                    )
                    sleep(wait)
            raise AssertionError("unreachable")

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
