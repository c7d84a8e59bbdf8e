# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/grafana.py

from __future__ import annotations

from typing import Any, Dict

from foundry.component.base import ComponentConfig, ReleaseRef
from .cluster import HelmComponent
from .loki import LOKI_URL
from .prometheus import PROMETHEUS_URL


class GrafanaComponent(HelmComponent):
    """Dashboards. Keeps users and dashboards on a PVC: repaired in place."""

    name = "grafana"
    dependencies = ("prometheus", "loki")
    release = ReleaseRef("grafana", "grafana")
    stateful = True

    repo_name = "grafana"
    repo_url = "https://grafana.github.io/helm-charts"
    chart = "grafana/grafana"
    default_version = "8.8.2"

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "persistence": {"enabled": True, "size": "5Gi"},
            "datasources": {
                "datasources.yaml": {
                    "apiVersion": 1,
                    "datasources": [
                        {
                            "name": "Prometheus",
                            "type": "prometheus",
                            "url": cfg.get_string("prometheus_url") or PROMETHEUS_URL,
                            "access": "proxy",
                            "isDefault": True,
                        },
                        {
                            "name": "Loki",
                            "type": "loki",
                            "url": cfg.get_string("loki_url") or LOKI_URL,
                            "access": "proxy",
                        },
                    ],
                },
            },
        }
        admin_password = cfg.get_string("admin_password")
        if admin_password:
            values["adminPassword"] = admin_password
        return values
