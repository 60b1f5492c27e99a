"""Retry policy for outbound writes."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

DEFAULT_WRITE_ATTEMPTS = 2  # first write plus one retry
DEFAULT_RETRY_BACKOFF = 0.2  # seconds


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to write a frame and how long to wait in between.

    Attributes:
        attempts: Total number of writes, including the first (>= 1)
        backoff: Fixed delay in seconds before each retry
        sleep: Function used to wait; inject a fake to test without delays
    """
    attempts: int = DEFAULT_WRITE_ATTEMPTS
    backoff: float = DEFAULT_RETRY_BACKOFF
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False, compare=False)

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.backoff < 0:
            raise ValueError("backoff must be >= 0")

    @classmethod
    def no_retry(cls) -> RetryPolicy:
        """Single attempt, no waiting."""
        return cls(attempts=1, backoff=0.0)

    def wait(self) -> None:
        """Sleep for the backoff delay."""
        if self.backoff > 0:
            self.sleep(self.backoff)
