# src/foundry/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one CLI invocation
    component: str

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(run_id: str, component: str) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id,
        "component": component,
    }


# ---------------------------------------------------------------------
# Reconciliation lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ReconcileStarted(BaseEvent):
    dry_run: bool

@dataclass(frozen=True)
class DependencyChecked(BaseEvent):
    dependency: str
    satisfied: bool

@dataclass(frozen=True)
class ReleaseActionChosen(BaseEvent):
    release: str
    namespace: str
    status: Optional[str]   # None when the release does not exist
    action: str

@dataclass(frozen=True)
class ReconcileSucceeded(BaseEvent):
    action: str
    substrate: str
    duration_ms: int
    warnings: List[str]

@dataclass(frozen=True)
class ReconcileFailed(BaseEvent):
    error: str


# ---------------------------------------------------------------------
# Best-effort follow-ups
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StateSaveFailed(BaseEvent):
    error: str

@dataclass(frozen=True)
class DNSRegistrationFailed(BaseEvent):
    error: str
