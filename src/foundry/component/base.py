# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/component/base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class Substrate(str, Enum):
    SSH = "ssh"                 # container on a host, driven over SSH
    KUBERNETES = "kubernetes"   # Helm release in the cluster


@dataclass(frozen=True)
class ReleaseRef:
    name: str
    namespace: str


@dataclass
class ComponentStatus:
    installed: bool = False
    version: str = ""
    healthy: bool = False
    message: str = ""


class ComponentConfig(Dict[str, Any]):
    """
    Per-invocation settings handed to a component.

    Typed getters return `default` when the key is missing or holds a value
    of the wrong type.
    """

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        val = self.get(key)
        return val if isinstance(val, str) else default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        val = self.get(key)
        # bool is an int subclass; a flag is not a count
        if isinstance(val, bool):
            return default
        if isinstance(val, int):
            return val
        if isinstance(val, float):
            return int(val)
        return default

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        val = self.get(key)
        return val if isinstance(val, bool) else default

    def get_map(self, key: str, default: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        val = self.get(key)
        return val if isinstance(val, dict) else default

    def get_string_list(self, key: str, default: Optional[List[str]] = None) -> Optional[List[str]]:
        val = self.get(key)
        if isinstance(val, (str, bytes)) or not isinstance(val, Sequence):
            return default
        if not all(isinstance(item, str) for item in val):
            return default
        return list(val)


class Component(ABC):
    """
    A deployable piece of the stack.

    Registration metadata lives on the class; instances are registered once
    at startup and never mutated. Substrate clients (SSH executor, Helm
    runner, kube client) arrive through the ComponentConfig.
    """

    name: str = ""
    dependencies: Tuple[str, ...] = ()
    substrate: Optional[Substrate] = None

    # Kubernetes-only
    release: Optional[ReleaseRef] = None
    stateful: bool = False               # repair in place instead of reinstall
    refresh_on_deployed: bool = False    # upgrade even when already deployed

    # SSH-only
    host_role: Optional[str] = None
    state_flags: Tuple[str, ...] = ()    # SetupState fields set after install
    dns_name: Optional[str] = None       # short name for self-registration

    @abstractmethod
    def install(self, cfg: ComponentConfig) -> None: ...

    @abstractmethod
    def upgrade(self, cfg: ComponentConfig) -> None: ...

    @abstractmethod
    def status(self, cfg: ComponentConfig) -> ComponentStatus: ...

    @abstractmethod
    def uninstall(self, cfg: ComponentConfig) -> None: ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
