# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/cluster.py

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Dict, Optional

from foundry.component.base import Component, ComponentConfig, ComponentStatus, ReleaseRef, Substrate
from foundry.component.health import PodPredicate, all_pods_running, pods_named
from foundry.errors import ConfigError
from foundry.helm.models import InstallSpec, Release, RepoSpec
from foundry.helm.values import deep_merge

log = logging.getLogger("foundry")


class ClusterComponent(Component):
    """
    Something that lives in the Kubernetes cluster. Its deployment record is
    read fresh with observe() before every decision.
    """

    substrate = Substrate.KUBERNETES

    # pods whose name contains this are checked after a change; None = every pod
    pod_filter: Optional[str] = None
    check_pods: bool = True
    health_timeout: int = 300

    # satisfied as a dependency as soon as Kubernetes itself is installed
    bundled_with_k8s: bool = False

    def release_for(self, cfg: ComponentConfig) -> ReleaseRef:
        if self.release is None:
            raise ConfigError(f"[{self.name}] no release reference declared")
        return self.release

    def health_predicate(self) -> PodPredicate:
        if self.pod_filter:
            return pods_named(self.pod_filter)
        return all_pods_running()

    @abstractmethod
    def observe(self, cfg: ComponentConfig) -> Optional[Release]:
        """Current deployment record, or None when nothing is deployed."""

    def status(self, cfg: ComponentConfig) -> ComponentStatus:
        rel = self.observe(cfg)
        if rel is None:
            return ComponentStatus(installed=False, message="release not found")
        return ComponentStatus(
            installed=True,
            version=rel.app_version,
            healthy=rel.deployed,
            message=f"release status: {rel.status}",
        )


class HelmComponent(ClusterComponent):
    """
    Declarative definition of a chart-backed component.

    cfg carries the helm runner ("helm"), the kube client ("kube"), the
    chart version override ("version") and user value overrides ("values"),
    plus whatever dependency-derived settings values() reads.
    """

    # Helm repository
    repo_name: str = ""
    repo_url: str = ""

    # Helm chart
    chart: str = ""
    default_version: Optional[str] = None

    timeout_seconds: int = 600

    # ------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------
    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        """Chart values built from cfg. Default: none."""
        return {}

    def repo(self, cfg: ComponentConfig) -> RepoSpec:
        return RepoSpec(name=self.repo_name, url=self.repo_url)

    def chart_for(self, cfg: ComponentConfig) -> str:
        return self.chart

    # ------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------
    def helm(self, cfg: ComponentConfig):
        helm = cfg.get("helm")
        if helm is None:
            raise ConfigError(f"[{self.name}] helm client not provided in config")
        return helm

    def spec(self, cfg: ComponentConfig, *, create_namespace: bool = False) -> InstallSpec:
        ref = self.release_for(cfg)
        return InstallSpec(
            release_name=ref.name,
            namespace=ref.namespace,
            chart=self.chart_for(cfg),
            version=cfg.get_string("version") or self.default_version,
            values=deep_merge(self.values(cfg), cfg.get_map("values") or {}),
            create_namespace=create_namespace,
            timeout_seconds=self.timeout_seconds,
        )

    def _add_repo(self, cfg: ComponentConfig) -> None:
        repo = self.repo(cfg)
        if repo.url:
            self.helm(cfg).add_repo(repo)

    # ------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------
    def install(self, cfg: ComponentConfig) -> None:
        self._add_repo(cfg)
        spec = self.spec(cfg, create_namespace=True)
        log.info("[%s] helm install %s (%s) in %s", self.name, spec.release_name, spec.chart, spec.namespace)
        self.helm(cfg).install(spec)

    def upgrade(self, cfg: ComponentConfig) -> None:
        self._add_repo(cfg)
        spec = self.spec(cfg)
        log.info("[%s] helm upgrade %s in %s", self.name, spec.release_name, spec.namespace)
        self.helm(cfg).upgrade(spec)

    def uninstall(self, cfg: ComponentConfig) -> None:
        ref = self.release_for(cfg)
        log.info("[%s] helm uninstall %s in %s", self.name, ref.name, ref.namespace)
        self.helm(cfg).uninstall(ref.name, ref.namespace)

    def observe(self, cfg: ComponentConfig) -> Optional[Release]:
        ref = self.release_for(cfg)
        for rel in self.helm(cfg).list(ref.namespace):
            if rel.name == ref.name:
                return rel
        return None
