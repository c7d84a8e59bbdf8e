# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/storage.py

from __future__ import annotations

from typing import Any, Dict

from foundry.component.base import ComponentConfig, ReleaseRef
from foundry.errors import MissingFlagError, ValidationError
from foundry.helm.models import RepoSpec
from .cluster import HelmComponent

BACKEND_LOCAL_PATH = "local-path"
BACKEND_NFS = "nfs"
BACKENDS = (BACKEND_LOCAL_PATH, BACKEND_NFS)

STORAGE_CLASS = "local-path"


def validate_backend(backend: str, nfs_server: str | None, nfs_path: str | None) -> None:
    """Checked before any side effect of a storage install."""
    if backend not in BACKENDS:
        raise ValidationError(f"unsupported storage backend: {backend} (expected one of {', '.join(BACKENDS)})")
    if backend == BACKEND_NFS and not (nfs_server and nfs_path):
        raise MissingFlagError("--nfs-server and --nfs-path are required for the nfs backend")


class StorageComponent(HelmComponent):
    """
    Default StorageClass. k3s bundles local-path-provisioner, so as a
    dependency storage counts as present once Kubernetes is up.
    """

    name = "storage"
    dependencies = ("k3s",)
    release = ReleaseRef("local-path-provisioner", "kube-system")
    bundled_with_k8s = True
    pod_filter = "provisioner"

    repo_name = "local-path-provisioner"
    repo_url = "https://charts.k8s.home/local-path-provisioner"
    chart = "local-path-provisioner/local-path-provisioner"
    default_version = "0.0.28"

    def _backend(self, cfg: ComponentConfig) -> str:
        return cfg.get_string("backend") or BACKEND_LOCAL_PATH

    def release_for(self, cfg: ComponentConfig) -> ReleaseRef:
        if self._backend(cfg) == BACKEND_NFS:
            return ReleaseRef("nfs-subdir-external-provisioner", "kube-system")
        return self.release

    def repo(self, cfg: ComponentConfig) -> RepoSpec:
        if self._backend(cfg) == BACKEND_NFS:
            return RepoSpec(
                name="nfs-subdir-external-provisioner",
                url="https://kubernetes-sigs.github.io/nfs-subdir-external-provisioner",
            )
        return super().repo(cfg)

    def chart_for(self, cfg: ComponentConfig) -> str:
        if self._backend(cfg) == BACKEND_NFS:
            return "nfs-subdir-external-provisioner/nfs-subdir-external-provisioner"
        return self.chart

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        storage_class = {"create": True, "name": STORAGE_CLASS, "defaultClass": True, "reclaimPolicy": "Delete"}
        if self._backend(cfg) == BACKEND_NFS:
            validate_backend(BACKEND_NFS, cfg.get_string("nfs_server"), cfg.get_string("nfs_path"))
            return {
                "nfs": {"server": cfg.get_string("nfs_server"), "path": cfg.get_string("nfs_path")},
                "storageClass": {**storage_class, "name": "nfs"},
            }
        return {"storageClass": storage_class}
