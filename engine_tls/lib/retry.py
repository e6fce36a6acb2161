"""Wait-until-ready helper for remote hosts that are still booting."""

import threading
import time
from collections.abc import Callable
from typing import Any

from .errors import OperationCancelled
from .logging_config import LOGGER

DEFAULT_ATTEMPTS = 5
DEFAULT_DELAY_SECONDS = 5.0


def wait_until_ready(
    probe: Callable[[], Any],
    attempts: int = DEFAULT_ATTEMPTS,
    delay: float = DEFAULT_DELAY_SECONDS,
    sleep: Callable[[float], Any] | None = None,
    cancel: threading.Event | None = None,
) -> bool:
    """Call ``probe`` until it stops raising, up to ``attempts`` times.

    Any exception from the probe counts as a failed attempt. ``delay`` is
    slept between failed attempts, not after the last one. Without an
    injected ``sleep`` the delay is waited on ``cancel`` when one is given
    (so setting it cuts the delay short) and on ``time.sleep`` otherwise.

    Args:
        probe: Side-effect-free callable; success means it returned
        attempts: Total attempt budget
        delay: Seconds between attempts
        sleep: Delay function, injectable for tests
        cancel: Optional event that aborts the wait when set

    Returns:
        True on the first successful probe, False once the budget is spent

    Raises:
        OperationCancelled: If ``cancel`` is set before an attempt
        ValueError: If attempts is less than 1
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep

    for attempt in range(1, attempts + 1):
        if cancel is not None and cancel.is_set():
            raise OperationCancelled("wait cancelled")
        try:
            probe()
            return True
        except Exception as e:
            LOGGER.info("Probe attempt %d/%d failed: %s", attempt, attempts, e)

        if attempt < attempts:
            sleep(delay)

    return False
