# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/contour.py

from __future__ import annotations

from typing import Any, Dict

from foundry.component.base import ComponentConfig, ReleaseRef
from .cluster import HelmComponent


class ContourComponent(HelmComponent):
    """Ingress / Gateway API controller. Stateless: a broken release is reinstalled."""

    name = "contour"
    dependencies = ("k3s", "gateway-api")
    release = ReleaseRef("contour", "projectcontour")

    repo_name = "bitnami"
    repo_url = "https://charts.bitnami.com/bitnami"
    chart = "bitnami/contour"

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "contour": {"manageCRDs": False},
            "envoy": {"service": {"type": "LoadBalancer"}},
        }
        vip = cfg.get_string("cluster_vip")
        if vip:
            values["envoy"]["service"]["externalIPs"] = [vip]
        return values
