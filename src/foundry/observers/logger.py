# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/observers/logger.py

from __future__ import annotations

import logging

from .events import (
    BaseEvent,
    DNSRegistrationFailed,
    ReconcileFailed,
    StateSaveFailed,
)

_WARN = (StateSaveFailed, DNSRegistrationFailed)


class LoggerObserver:
    """Writes every lifecycle event to the run log."""

    def __init__(self, logger: logging.Logger | None = None):
        self.log = logger or logging.getLogger("foundry")

    def notify(self, event: BaseEvent) -> None:
        fields = {
            k: v for k, v in event.dict().items()
            if k not in ("ts", "run_id", "component")
        }
        detail = " ".join(f"{k}={v}" for k, v in fields.items())
        msg = f"[event] {type(event).__name__} component={event.component} {detail}".rstrip()

        if isinstance(event, ReconcileFailed):
            self.log.error(msg)
        elif isinstance(event, _WARN):
            self.log.warning(msg)
        else:
            self.log.debug(msg)
