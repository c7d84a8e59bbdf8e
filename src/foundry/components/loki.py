# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/loki.py

from __future__ import annotations

from typing import Any, Dict

from foundry.component.base import ComponentConfig, ReleaseRef
from foundry.errors import ConfigError
from .cluster import HelmComponent

LOKI_URL = "http://loki.loki.svc.cluster.local:3100"


def s3_settings(cfg: ComponentConfig, component: str) -> Dict[str, str]:
    """Object-storage settings fed in from the seaweedfs credentials secret."""
    out = {}
    for key in ("s3_endpoint", "s3_region", "s3_access_key", "s3_secret_key"):
        value = cfg.get_string(key)
        if not value:
            raise ConfigError(f"[{component}] {key} not provided (is seaweedfs installed?)")
        out[key] = value
    return out


class LokiComponent(HelmComponent):
    name = "loki"
    dependencies = ("storage", "seaweedfs")
    release = ReleaseRef("loki", "loki")

    repo_name = "grafana"
    repo_url = "https://grafana.github.io/helm-charts"
    chart = "grafana/loki"
    default_version = "6.23.0"

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        s3 = s3_settings(cfg, self.name)
        bucket = cfg.get_string("s3_bucket") or "loki"
        return {
            "deploymentMode": "SingleBinary",
            "loki": {
                "auth_enabled": False,
                "commonConfig": {"replication_factor": 1},
                "schemaConfig": {
                    "configs": [{
                        "from": "2024-01-01",
                        "store": "tsdb",
                        "object_store": "s3",
                        "schema": "v13",
                        "index": {"prefix": "index_", "period": "24h"},
                    }],
                },
                "storage": {
                    "type": "s3",
                    "bucketNames": {"chunks": bucket, "ruler": bucket, "admin": bucket},
                    "s3": {
                        "endpoint": s3["s3_endpoint"],
                        "region": s3["s3_region"],
                        "accessKeyId": s3["s3_access_key"],
                        "secretAccessKey": s3["s3_secret_key"],
                        "s3ForcePathStyle": True,
                        "insecure": True,
                    },
                },
            },
            "singleBinary": {"replicas": 1},
            "read": {"replicas": 0},
            "write": {"replicas": 0},
            "backend": {"replicas": 0},
        }
