# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/prometheus.py

from __future__ import annotations

from typing import Any, Dict, List

from foundry.component.base import ComponentConfig, ReleaseRef
from .cluster import HelmComponent

PROMETHEUS_URL = "http://kube-prometheus-stack-prometheus.monitoring.svc.cluster.local:9090"


def scrape_configs(targets: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out = []
    for t in targets:
        job = {
            "job_name": t["name"],
            "metrics_path": t.get("metrics_path", "/metrics"),
            "static_configs": [{"targets": list(t["targets"])}],
        }
        if t.get("params"):
            job["params"] = t["params"]
        out.append(job)
    return out


class PrometheusComponent(HelmComponent):
    """kube-prometheus-stack, plus scrape jobs for the host services."""

    name = "prometheus"
    dependencies = ("storage",)
    release = ReleaseRef("kube-prometheus-stack", "monitoring")

    repo_name = "prometheus-community"
    repo_url = "https://prometheus-community.github.io/helm-charts"
    chart = "prometheus-community/kube-prometheus-stack"
    default_version = "67.4.0"

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "retention": cfg.get_string("retention") or "15d",
            "serviceMonitorSelectorNilUsesHelmValues": False,
            "podMonitorSelectorNilUsesHelmValues": False,
        }
        targets = cfg.get("external_targets") or []
        if targets:
            spec["additionalScrapeConfigs"] = scrape_configs(targets)

        return {
            # grafana is its own component
            "grafana": {"enabled": False},
            "prometheus": {"prometheusSpec": spec},
        }
