"""Wall-clock limit for a whole sync run."""

import logging
import threading
from typing import Callable, TypeVar

from ..core.exceptions import SyncError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_timeout(func: Callable[[], T], timeout: float) -> T:
    """Run ``func`` in a daemon thread and wait at most ``timeout`` seconds.

    The worker is abandoned, not interrupted, when the limit passes; being a
    daemon thread it does not keep the process alive.

    Args:
        func: Work to run
        timeout: Seconds to wait

    Returns:
        Whatever ``func`` returned

    Raises:
        SyncError: If ``func`` is still running after ``timeout``
        Exception: Whatever ``func`` raised
    """
    outcome = {}

    def target():
        try:
            outcome["result"] = func()
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=target, name="itsync-sync", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        logger.error(f"Sync did not finish within {timeout:g} seconds, giving up")
        raise SyncError(f"Sync did not finish within {timeout:g} seconds (sync.timeout)")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]
