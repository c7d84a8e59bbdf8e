# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/component/registry.py

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional, Set

from foundry.errors import (
    AlreadyRegisteredError,
    CircularDependencyError,
    ComponentNotFoundError,
)
from .base import Component


class Registry:
    """
    Name -> component map. Safe to read and write from several threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._components: Dict[str, Component] = {}

    def register(self, component: Component) -> None:
        with self._lock:
            if component.name in self._components:
                raise AlreadyRegisteredError(component.name)
            self._components[component.name] = component

    def get(self, name: str) -> Optional[Component]:
        with self._lock:
            return self._components.get(name)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._components

    def list(self) -> Set[str]:
        """Registered names. No ordering is implied."""
        with self._lock:
            return set(self._components)

    def all(self) -> List[Component]:
        with self._lock:
            return list(self._components.values())

    def unregister(self, name: str) -> None:
        with self._lock:
            self._components.pop(name, None)


def resolve_install_order(registry: Registry, names: Iterable[str]) -> List[str]:
    """
    Depth-first topological order of `names` plus everything they depend on,
    dependencies first.
    """
    order: List[str] = []
    visited: Set[str] = set()
    visiting: Set[str] = set()

    def visit(name: str) -> None:
        if name in visiting:
            raise CircularDependencyError(
                f"circular dependency detected involving component {name!r}"
            )
        if name in visited:
            return

        component = registry.get(name)
        if component is None:
            raise ComponentNotFoundError(name)

        visiting.add(name)
        for dep in component.dependencies:
            visit(dep)
        visiting.discard(name)

        visited.add(name)
        order.append(name)

    for name in names:
        visit(name)
    return order


def build_default_registry() -> Registry:
    # imported here so component modules can import this package freely
    from foundry.components.catalog import ALL_COMPONENTS

    registry = Registry()
    for cls in ALL_COMPONENTS:
        registry.register(cls())
    return registry
