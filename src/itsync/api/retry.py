"""Bounded retry policy shared by the request executors."""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a request and how to wait between tries.

    Attributes:
        max_attempts: Total attempts, including the first one
        default_wait: Seconds to wait when the server does not say
        sleep: Function used to wait; replaced in tests
    """
    max_attempts: int = 5
    default_wait: float = 30.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def wait(self, seconds: Optional[float] = None) -> None:
        """Sleep for ``seconds``, or the default wait when None."""
        self.sleep(self.default_wait if seconds is None else max(0.0, seconds))


@dataclass(frozen=True)
class PollPolicy:
    """Attempt budget and fixed interval for polling a slow server-side job."""
    max_attempts: int = 30
    interval: float = 30.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def wait(self) -> None:
        self.sleep(self.interval)
