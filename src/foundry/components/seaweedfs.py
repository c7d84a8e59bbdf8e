# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/seaweedfs.py

from __future__ import annotations

from typing import Any, Dict

from foundry.component.base import ComponentConfig, ReleaseRef
from .cluster import HelmComponent

S3_ENDPOINT = "http://seaweedfs-s3.seaweedfs.svc.cluster.local:8333"
S3_REGION = "us-east-1"
CREDENTIALS_SECRET = ReleaseRef("seaweedfs", "seaweedfs")


def _resources(cpu: str, memory: str, limit: str) -> Dict[str, Any]:
    return {"requests": {"cpu": cpu, "memory": memory}, "limits": {"memory": limit}}


class SeaweedFSComponent(HelmComponent):
    """S3-compatible object storage. Holds data: repaired in place, never reinstalled."""

    name = "seaweedfs"
    dependencies = ("storage",)
    release = ReleaseRef("seaweedfs", "seaweedfs")
    stateful = True

    repo_name = "seaweedfs"
    repo_url = "https://seaweedfs.github.io/seaweedfs/helm"
    chart = "seaweedfs/seaweedfs"
    default_version = "4.0.401"

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        size = cfg.get_string("storage_size") or "50Gi"
        return {
            "master": {
                "replicas": 1,
                "persistence": {"enabled": True, "size": "1Gi"},
                "resources": _resources("50m", "128Mi", "512Mi"),
            },
            "volume": {
                "replicas": 1,
                "dataDirs": [{"name": "data", "type": "persistentVolumeClaim", "size": size, "maxVolumes": 0}],
                "resources": _resources("100m", "256Mi", "1Gi"),
            },
            "filer": {"replicas": 1, "s3": {"enabled": True, "enableAuth": True}},
            "s3": {"enabled": True, "port": 8333, "enableAuth": True, "createBuckets": [{"name": "loki"}, {"name": "velero"}]},
        }
