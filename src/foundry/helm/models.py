# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/helm/models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


STATUS_DEPLOYED = "deployed"
STATUS_FAILED = "failed"
STATUS_PENDING_INSTALL = "pending-install"
STATUS_PENDING_UPGRADE = "pending-upgrade"
STATUS_UNINSTALLING = "uninstalling"


@dataclass(frozen=True)
class Release:
    """
    Snapshot of a Helm release as reported by `helm list`.
    Another actor may change it at any time; never cache it.
    """
    name: str
    namespace: str
    status: str
    app_version: str = ""
    chart: str = ""
    revision: int = 0

    @property
    def deployed(self) -> bool:
        return self.status == STATUS_DEPLOYED


class RepoSpec(BaseModel):
    name: str
    url: str
    username: Optional[str] = None
    password: Optional[str] = None
    force_update: bool = True


class InstallSpec(BaseModel):
    release_name: str                 # helm release name
    namespace: str                    # target ns
    chart: str                        # repo/chart or oci:// uri
    version: Optional[str] = None
    values: Dict[str, Any] = Field(default_factory=dict)
    create_namespace: bool = False
    wait: bool = True
    timeout_seconds: int = 600
