# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/cert_manager.py

from __future__ import annotations

from typing import Any, Dict

from foundry.component.base import ComponentConfig, ReleaseRef
from .cluster import HelmComponent


class CertManagerComponent(HelmComponent):
    """Upgraded on every install. A broken release is repaired in place."""

    name = "cert-manager"
    dependencies = ("k3s",)
    release = ReleaseRef("cert-manager", "cert-manager")
    stateful = True
    refresh_on_deployed = True

    repo_name = "jetstack"
    repo_url = "https://charts.jetstack.io"
    chart = "jetstack/cert-manager"
    default_version = "v1.14.2"

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        return {
            "installCRDs": True,
            "extraArgs": ["--enable-gateway-api"],
        }
