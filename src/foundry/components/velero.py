# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/velero.py

from __future__ import annotations

from typing import Any, Dict

from foundry.component.base import ComponentConfig, ReleaseRef
from .cluster import HelmComponent
from .loki import s3_settings


def credentials_file(access_key: str, secret_key: str) -> str:
    return f"[default]\naws_access_key_id={access_key}\naws_secret_access_key={secret_key}\n"


class VeleroComponent(HelmComponent):
    """Cluster backups into the seaweedfs "velero" bucket."""

    name = "velero"
    dependencies = ("seaweedfs",)
    release = ReleaseRef("velero", "velero")
    stateful = True
    refresh_on_deployed = True

    repo_name = "vmware-tanzu"
    repo_url = "https://vmware-tanzu.github.io/helm-charts"
    chart = "vmware-tanzu/velero"
    default_version = "8.0.0"

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        s3 = s3_settings(cfg, self.name)
        return {
            "initContainers": [{
                "name": "velero-plugin-for-aws",
                "image": "velero/velero-plugin-for-aws:v1.10.0",
                "volumeMounts": [{"mountPath": "/target", "name": "plugins"}],
            }],
            "configuration": {
                "backupStorageLocation": [{
                    "name": "default",
                    "provider": "aws",
                    "bucket": cfg.get_string("s3_bucket") or "velero",
                    "config": {
                        "region": s3["s3_region"],
                        "s3ForcePathStyle": "true",
                        "s3Url": s3["s3_endpoint"],
                    },
                }],
                "volumeSnapshotLocation": [],
            },
            "credentials": {
                "useSecret": True,
                "secretContents": {"cloud": credentials_file(s3["s3_access_key"], s3["s3_secret_key"])},
            },
            "snapshotsEnabled": False,
            "deployNodeAgent": True,
        }
