# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/component/health.py

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol, Sequence

from foundry.errors import FoundryError
from foundry.k8s.client import Pod
from foundry.utils.poll import DEFAULT_INTERVAL, poll_until

log = logging.getLogger("foundry")

PodPredicate = Callable[[Sequence[Pod]], bool]

_DONE_OR_RUNNING = ("Running", "Succeeded")


class PodLister(Protocol):
    def get_pods(self, namespace: str) -> list[Pod]: ...


def all_pods_running() -> PodPredicate:
    """
    At least one pod Running, every other pod Running or Succeeded
    (completed Job and hook pods stay in the namespace).
    """
    def check(pods: Sequence[Pod]) -> bool:
        return any(p.status == "Running" for p in pods) and all(p.status in _DONE_OR_RUNNING for p in pods)
    return check


def pods_named(substring: str) -> PodPredicate:
    """At least one pod whose name contains `substring`, and all such pods Running."""
    def check(pods: Sequence[Pod]) -> bool:
        matching = [p for p in pods if substring in p.name]
        return bool(matching) and all(p.status == "Running" for p in matching)
    return check


class HealthVerifier:
    def __init__(self, kube: PodLister, *, interval: float = DEFAULT_INTERVAL):
        self.kube = kube
        self.interval = interval

    def _pod_status_summary(self, pods: Sequence[Pod]) -> str:
        if not pods:
            return "no pods found"
        return "; ".join(f"{p.name}: {p.status}" for p in pods)

    def verify(
        self,
        namespace: str,
        predicate: PodPredicate,
        timeout: float,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        """
        Block until `predicate` holds for the pods in `namespace`.

        Listing errors and an empty namespace count as "not ready yet".
        """
        def check() -> bool:
            try:
                pods = self.kube.get_pods(namespace)
            except FoundryError as exc:
                log.debug("[health] pod listing in %s failed, retrying: %s", namespace, exc)
                return False
            ready = predicate(pods)
            if not ready:
                log.debug("[health] waiting on %s: %s", namespace, self._pod_status_summary(pods))
            return ready

        log.info("[health] waiting for pods in '%s' (timeout %ss)", namespace, int(timeout))
        poll_until(
            check,
            timeout=timeout,
            interval=self.interval,
            cancel=cancel,
            describe=f"pods in namespace {namespace!r} to be ready",
        )
        log.info("[health] pods in '%s' are running", namespace)
