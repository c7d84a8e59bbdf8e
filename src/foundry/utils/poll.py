# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import threading
import time
from typing import Callable, Optional

from foundry.errors import CancelledError, HealthCheckTimeoutError

DEFAULT_INTERVAL = 5.0


def poll_until(
    check: Callable[[], bool],
    *,
    timeout: float,
    interval: float = DEFAULT_INTERVAL,
    cancel: Optional[threading.Event] = None,
    describe: str = "condition",
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Fixed-interval poll. Waits `interval`, calls `check`, repeats.

    check: returns True once satisfied
    timeout: seconds before HealthCheckTimeoutError
    interval: seconds between checks (no backoff, no jitter)
    cancel: set from another thread to abort with CancelledError
    """
    cancel = cancel or threading.Event()
    deadline = clock() + timeout

    while True:
        # Event.wait doubles as the ticker and the cancellation select
        if cancel.wait(interval):
            raise CancelledError(f"cancelled while waiting for {describe}")
        if check():
            return
        if clock() >= deadline:
            raise HealthCheckTimeoutError(f"timeout waiting for {describe}")
