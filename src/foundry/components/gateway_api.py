# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/gateway_api.py

from __future__ import annotations

import logging
from typing import List, Optional

import requests
import yaml

from foundry.component.base import ComponentConfig, ReleaseRef
from foundry.errors import ConfigError, KubeError
from foundry.helm.models import STATUS_DEPLOYED, Release
from .cluster import ClusterComponent

log = logging.getLogger("foundry")

RELEASE_URL = "https://github.com/kubernetes-sigs/gateway-api/releases/download"
# experimental channel: contour needs BackendTLSPolicy
INSTALL_FILE = "experimental-install.yaml"
DEFAULT_VERSION = "v1.3.0"

CRDS = (
    "gatewayclasses.gateway.networking.k8s.io",
    "gateways.gateway.networking.k8s.io",
    "httproutes.gateway.networking.k8s.io",
    "referencegrants.gateway.networking.k8s.io",
    "grpcroutes.gateway.networking.k8s.io",
    "backendtlspolicies.gateway.networking.k8s.io",
)


class GatewayAPIComponent(ClusterComponent):
    """
    Gateway API CRDs, applied from the upstream release manifest. There is no
    Helm release: the deployment record is synthesized from the CRDs.
    """

    name = "gateway-api"
    dependencies = ("k3s",)
    release = ReleaseRef("gateway-api", "gateway-system")
    check_pods = False

    def kube(self, cfg: ComponentConfig):
        kube = cfg.get("kube")
        if kube is None:
            raise ConfigError("[gateway-api] kube client not provided in config")
        return kube

    def _manifest(self, version: str) -> List[dict]:
        url = f"{RELEASE_URL}/{version}/{INSTALL_FILE}"
        log.info("[gateway-api] downloading %s", url)
        try:
            r = requests.get(url, timeout=60)
            r.raise_for_status()
        except requests.RequestException as exc:
            raise KubeError(f"failed to download Gateway API manifest: {exc}") from exc
        return [doc for doc in yaml.safe_load_all(r.text) if doc]

    def install(self, cfg: ComponentConfig) -> None:
        version = cfg.get_string("version") or DEFAULT_VERSION
        self.kube(cfg).apply_manifest(self._manifest(version))
        log.info("[gateway-api] CRDs %s applied", version)

    def upgrade(self, cfg: ComponentConfig) -> None:
        self.install(cfg)

    def uninstall(self, cfg: ComponentConfig) -> None:
        # deleting the CRDs would delete every Gateway and route in the cluster
        raise ConfigError("gateway-api CRDs are not removed automatically; delete them with kubectl")

    def observe(self, cfg: ComponentConfig) -> Optional[Release]:
        kube = self.kube(cfg)
        if not all(kube.crd_exists(name) for name in CRDS):
            return None
        return Release(name=self.release.name, namespace=self.release.namespace, status=STATUS_DEPLOYED)
