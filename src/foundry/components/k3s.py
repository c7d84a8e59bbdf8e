# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/k3s.py

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from foundry.component.base import ComponentConfig
from foundry.config.models import ROLE_CLUSTER_CONTROL_PLANE
from foundry.errors import ConfigError
from foundry.utils.poll import poll_until
from .host_service import Executor, HostServiceComponent

log = logging.getLogger("foundry")

INSTALL_SCRIPT = "https://get.k3s.io"
REMOTE_KUBECONFIG = "/etc/rancher/k3s/k3s.yaml"
REGISTRIES_PATH = "/etc/rancher/k3s/registries.yaml"


def registries_config(registry: str) -> dict:
    """Pull docker.io and ghcr.io through the local Zot registry."""
    endpoint = f"http://{registry}"
    return {
        "mirrors": {
            "docker.io": {"endpoint": [endpoint]},
            "ghcr.io": {"endpoint": [endpoint]},
            registry: {"endpoint": [endpoint]},
        },
    }


class K3sComponent(HostServiceComponent):
    """
    Single control-plane k3s server. Traefik and ServiceLB are disabled:
    ingress and load balancing come from the stack's own components.
    """

    name = "k3s"
    dependencies = ("openbao", "dns", "zot")
    host_role = ROLE_CLUSTER_CONTROL_PLANE
    state_flags = ("k8s_installed",)
    dns_name = "k8s"
    units = ("k3s",)
    default_version = ""

    def install(self, cfg: ComponentConfig) -> None:
        ex = self.executor(cfg)
        address = cfg.get_string("address")
        if not address:
            raise ConfigError("[k3s] target host address not provided in config")
        vip = cfg.get_string("cluster_vip") or ""
        registry = cfg.get_string("registry")

        if registry:
            ex.execute("mkdir -p /etc/rancher/k3s", sudo=True)
            self.write_file(ex, REGISTRIES_PATH, yaml.safe_dump(registries_config(registry), sort_keys=False))

        args = ["server", "--disable traefik", "--disable servicelb", "--write-kubeconfig-mode 600"]
        for san in filter(None, [address, vip]):
            args.append(f"--tls-san {san}")

        env = f"INSTALL_K3S_VERSION={self.version(cfg)} " if self.version(cfg) else ""
        log.info("[k3s] installing on %s", address)
        ex.execute(f"curl -sfL {INSTALL_SCRIPT} | {env}sh -s - {' '.join(args)}", sudo=True)

        self._wait_for_node(ex, cfg.get_int("timeout") or 300)

        kubeconfig_path = cfg.get_string("kubeconfig_path")
        if kubeconfig_path:
            self._fetch_kubeconfig(ex, Path(kubeconfig_path), vip or address)

    def upgrade(self, cfg: ComponentConfig) -> None:
        # the install script upgrades in place
        self.install(cfg)

    def _wait_for_node(self, ex: Executor, timeout: int) -> None:
        def ready() -> bool:
            rc, out, _ = ex.run("k3s kubectl get nodes --no-headers", sudo=True)
            return rc == 0 and " Ready" in out

        poll_until(ready, timeout=timeout, interval=5, describe="k3s node to become Ready")
        log.info("[k3s] node is Ready")

    def _fetch_kubeconfig(self, ex: Executor, dest: Path, server: str) -> None:
        content = ex.execute(f"cat {REMOTE_KUBECONFIG}", sudo=True)
        content = content.replace("https://127.0.0.1:6443", f"https://{server}:6443")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(content)
        dest.chmod(0o600)
        log.info("[k3s] kubeconfig written to %s", dest)

    def installed_version(self, ex: Executor) -> str:
        rc, out, _ = ex.run("k3s --version")
        # "k3s version v1.30.2+k3s1 (...)"
        parts = out.split()
        return parts[2] if rc == 0 and len(parts) > 2 else ""

    def uninstall(self, cfg: ComponentConfig) -> None:
        self.executor(cfg).execute("/usr/local/bin/k3s-uninstall.sh", sudo=True)
