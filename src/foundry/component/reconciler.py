# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/component/reconciler.py

"""
Drive one component to its installed state.

    validate -> dependencies -> substrate -> (k8s | ssh) -> state -> zones (dns) -> DNS

Everything up to the substrate call is side-effect free. After a successful
substrate call the remaining steps are best effort: a failure to save state
or register DNS is logged, emitted as an event and recorded on the result.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from foundry.component.base import Component, ComponentConfig, ComponentStatus, Substrate
from foundry.component.health import HealthVerifier
from foundry.component.inputs import dependency_values, ensure_dns_api_key, ssh_config
from foundry.component.registry import Registry
from foundry.components.cluster import ClusterComponent
from foundry.components.storage import BACKEND_LOCAL_PATH, validate_backend
from foundry.config.loader import kubeconfig_path, openbao_keys_dir, ssh_keys_dir
from foundry.config.models import StackConfig
from foundry.dns.registration import build_dns_client, ensure_zones, register_after_install
from foundry.errors import (
    CancelledError,
    ComponentNotFoundError,
    ConfigError,
    DependencyNotSatisfiedError,
    FoundryError,
    ManualInterventionError,
    UnknownSubstrateError,
)
from foundry.helm.cli_runner import HelmCliRunner
from foundry.helm.models import Release
from foundry.k8s.client import KubeClient
from foundry.observers.dispatcher import EventBus
from foundry.observers.events import (
    DependencyChecked,
    DNSRegistrationFailed,
    ReconcileFailed,
    ReconcileStarted,
    ReconcileSucceeded,
    ReleaseActionChosen,
    StateSaveFailed,
    new_ctx,
)
from foundry.openbao.client import OpenBaoClient
from foundry.secrets.chain import ChainResolver, build_secret_chain
from foundry.state.store import StateStore, record_install
from foundry.utils.ssh_runner import host_key_path, open_ssh

log = logging.getLogger("foundry")


class Action(str, Enum):
    INSTALL = "install"
    UPGRADE = "upgrade"
    SKIP = "skip"
    REINSTALL = "reinstall"     # uninstall, then install
    REPAIR = "repair"           # upgrade in place, data kept


@dataclass
class InstallOptions:
    dry_run: bool = False
    version: Optional[str] = None
    backend: Optional[str] = None      # None: stack file setting, then local-path
    nfs_server: Optional[str] = None
    nfs_path: Optional[str] = None


@dataclass
class ReconcileResult:
    component: str
    action: Action
    substrate: Substrate
    dry_run: bool = False
    warnings: List[str] = field(default_factory=list)


def choose_action(component: Component, release: Optional[Release]) -> Action:
    if release is None:
        return Action.INSTALL
    if release.deployed:
        return Action.UPGRADE if component.refresh_on_deployed else Action.SKIP
    if component.stateful:
        return Action.REPAIR
    return Action.REINSTALL


class Reconciler:
    """
    Substrate clients are created lazily, and only when the chosen path needs
    them. Tests pass fakes for every one of them.
    """

    def __init__(
        self,
        registry: Registry,
        config: StackConfig,
        config_path: str | Path,
        *,
        helm: Optional[HelmCliRunner] = None,
        kube: Optional[KubeClient] = None,
        health: Optional[HealthVerifier] = None,
        ssh_connect: Callable = open_ssh,
        openbao_factory: Callable[[str, str], OpenBaoClient] = OpenBaoClient,
        dns_client_factory: Optional[Callable] = None,
        bus: Optional[EventBus] = None,
        run_id: str = "",
        cancel: Optional[threading.Event] = None,
    ):
        self.registry = registry
        self.config = config
        self.store = StateStore(config_path)
        self.ssh_connect = ssh_connect
        self.openbao_factory = openbao_factory
        self.bus = bus or EventBus()
        self.run_id = run_id
        self.cancel = cancel

        self._helm = helm
        self._kube = kube
        self._health = health
        self._secrets: Optional[ChainResolver] = None
        self._dns_client_factory = dns_client_factory

    # ------------------------------------------------------------------
    # lazily built collaborators
    # ------------------------------------------------------------------
    def _kubeconfig(self) -> Path:
        path = kubeconfig_path()
        if not path.is_file():
            raise ConfigError(
                f"kubeconfig not found at {path}\n\n"
                "Hint: Install K3s first with 'foundry component install k3s'"
            )
        return path

    def helm(self) -> HelmCliRunner:
        if self._helm is None:
            self._helm = HelmCliRunner(kubeconfig=str(self._kubeconfig()))
        return self._helm

    def kube(self) -> KubeClient:
        if self._kube is None:
            self._kube = KubeClient(str(self._kubeconfig()))
        return self._kube

    def health(self) -> HealthVerifier:
        if self._health is None:
            self._health = HealthVerifier(self.kube())
        return self._health

    def secrets(self) -> ChainResolver:
        if self._secrets is None:
            self._secrets = build_secret_chain(
                self.config, openbao_keys_dir(), client_factory=self.openbao_factory
            )
        return self._secrets

    def _dns_client(self):
        if self._dns_client_factory is not None:
            return self._dns_client_factory()
        return build_dns_client(self.config, self.secrets())

    def _emit(self, event_cls, component: str, **fields) -> None:
        self.bus.emit(event_cls(**new_ctx(self.run_id, component), **fields))

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise CancelledError("reconciliation cancelled")

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def reconcile(self, name: str, opts: Optional[InstallOptions] = None) -> ReconcileResult:
        opts = opts or InstallOptions()
        started = time.monotonic()
        self._emit(ReconcileStarted, name, dry_run=opts.dry_run)

        try:
            result = self._reconcile(name, opts)
        except FoundryError as exc:
            self._emit(ReconcileFailed, name, error=str(exc))
            raise

        self._emit(
            ReconcileSucceeded,
            name,
            action=result.action.value,
            substrate=result.substrate.value,
            duration_ms=int((time.monotonic() - started) * 1000),
            warnings=list(result.warnings),
        )
        return result

    def is_installed(self, name: str) -> bool:
        """The same test the dependency check applies."""
        self._get(name)
        return self._dependency_satisfied(name)

    def mark_stack_complete(self) -> None:
        """Persist stack_complete after every registered component went through."""
        self.config.setup_state.stack_complete = True
        self.store.save(self.config)

    def status(self, name: str) -> ComponentStatus:
        component = self._get(name)
        if component.substrate == Substrate.KUBERNETES:
            return component.status(self._cluster_config(component, InstallOptions()))
        if component.substrate == Substrate.SSH:
            host = self.config.primary_host(component.host_role)
            with self._connect(host) as runner:
                return component.status(ComponentConfig(host=runner))
        raise UnknownSubstrateError(f"component {name!r} has no known substrate")

    # ------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------
    def _get(self, name: str) -> Component:
        component = self.registry.get(name)
        if component is None:
            raise ComponentNotFoundError(name)
        return component

    def _validate_storage(self, component: Component, opts: InstallOptions) -> None:
        """Flags win over the component's stack settings, which win over local-path."""
        settings = self.config.component_settings(component.name)
        validate_backend(
            opts.backend or settings.get("backend") or BACKEND_LOCAL_PATH,
            opts.nfs_server or settings.get("nfs_server"),
            opts.nfs_path or settings.get("nfs_path"),
        )

    def _reconcile(self, name: str, opts: InstallOptions) -> ReconcileResult:
        self._check_cancelled()
        component = self._get(name)
        self._validate_storage(component, opts)

        log.info("Checking dependencies for %s...", name)
        for dep in component.dependencies:
            satisfied = self._dependency_satisfied(dep)
            self._emit(DependencyChecked, name, dependency=dep, satisfied=satisfied)
            if not satisfied:
                raise DependencyNotSatisfiedError(dep, name)
            log.info("  %s (installed)", dep)

        api_key_used = False
        if component.substrate == Substrate.KUBERNETES and isinstance(component, ClusterComponent):
            result = self._reconcile_cluster(component, opts)
        elif component.substrate == Substrate.SSH:
            result, api_key_used = self._reconcile_host(component, opts)
        else:
            raise UnknownSubstrateError(f"component {name!r} has no known substrate")

        if not opts.dry_run and result.action != Action.SKIP:
            self._record_state(component, result, api_key_used)
            if component.name == "dns":
                self._create_zones(component, result)
            self._register_dns(component, result)
        return result

    def _dependency_satisfied(self, dep: str) -> bool:
        component = self.registry.get(dep)
        if component is None:
            return False
        state = self.config.setup_state

        if component.substrate == Substrate.SSH:
            # first flag is the "installed" flag
            return bool(component.state_flags) and bool(getattr(state, component.state_flags[0]))

        if not state.k8s_installed:
            return False
        if not isinstance(component, ClusterComponent):
            return False
        if component.bundled_with_k8s:
            return True
        try:
            release = component.observe(self._cluster_config(component, InstallOptions()))
        except FoundryError as exc:
            log.debug("could not read release for %s: %s", dep, exc)
            return False
        return release is not None and release.deployed

    # ------------------------------------------------------------------
    # Kubernetes path
    # ------------------------------------------------------------------
    def _cluster_config(self, component: Component, opts: InstallOptions) -> ComponentConfig:
        cfg = ComponentConfig(self.config.component_settings(component.name))
        cfg.update(helm=self.helm(), kube=self.kube())
        if opts.backend:
            cfg["backend"] = opts.backend
        if opts.version:
            cfg["version"] = opts.version
        if opts.nfs_server:
            cfg["nfs_server"] = opts.nfs_server
        if opts.nfs_path:
            cfg["nfs_path"] = opts.nfs_path
        if self.config.cluster.vip:
            cfg.setdefault("cluster_vip", self.config.cluster.vip)
        return cfg

    def _reconcile_cluster(self, component: ClusterComponent, opts: InstallOptions) -> ReconcileResult:
        cfg = self._cluster_config(component, opts)
        ref = component.release_for(cfg)

        release = component.observe(cfg)
        action = choose_action(component, release)
        self._emit(
            ReleaseActionChosen,
            component.name,
            release=ref.name,
            namespace=ref.namespace,
            status=release.status if release else None,
            action=action.value,
        )
        result = ReconcileResult(component.name, action, Substrate.KUBERNETES, dry_run=opts.dry_run)

        if opts.dry_run:
            log.info("[dry-run] would %s %s (release %s/%s)", action.value, component.name, ref.namespace, ref.name)
            return result

        if action == Action.SKIP:
            log.info("%s already deployed (release %s/%s)", component.name, ref.namespace, ref.name)
            return result

        cfg.update(
            dependency_values(
                component.name,
                self.config,
                kube=self.kube(),
                secrets=self.secrets,
                warnings=result.warnings,
            )
        )

        self._check_cancelled()
        if action == Action.INSTALL:
            component.install(cfg)
        elif action == Action.UPGRADE:
            component.upgrade(cfg)
        elif action == Action.REINSTALL:
            log.warning("%s release is %s; reinstalling", component.name, release.status)
            component.uninstall(cfg)
            component.install(cfg)
        elif action == Action.REPAIR:
            log.warning("%s release is %s; repairing in place", component.name, release.status)
            try:
                component.upgrade(cfg)
            except FoundryError as exc:
                raise ManualInterventionError(ref.name, ref.namespace, release.status, exc) from exc

        if component.check_pods:
            self.health().verify(
                ref.namespace,
                component.health_predicate(),
                component.health_timeout,
                cancel=self.cancel,
            )
        log.info("%s %s complete", component.name, action.value)
        return result

    # ------------------------------------------------------------------
    # SSH path
    # ------------------------------------------------------------------
    def _connect(self, host):
        key = host_key_path(ssh_keys_dir(), self.config.cluster.name, host.hostname)
        return self.ssh_connect(host, key_path=key)

    def _reconcile_host(self, component: Component, opts: InstallOptions) -> Tuple[ReconcileResult, bool]:
        if not component.host_role:
            raise ConfigError(f"component {component.name!r} declares no host role")
        host = self.config.primary_host(component.host_role)
        log.info("Target host: %s (%s)", host.hostname, host.address)

        result = ReconcileResult(component.name, Action.INSTALL, Substrate.SSH, dry_run=opts.dry_run)
        if opts.dry_run:
            log.info("[dry-run] would install %s on %s", component.name, host.hostname)
            return result, False

        keys_dir = openbao_keys_dir()
        self._check_cancelled()
        with self._connect(host) as runner:
            cfg = ssh_config(
                component.name,
                self.config,
                host,
                runner,
                version=opts.version,
                keys_dir=keys_dir,
                kubeconfig=kubeconfig_path(),
                dns_api_key=lambda: ensure_dns_api_key(
                    self.config, keys_dir, client_factory=self.openbao_factory
                ),
            )
            cfg.setdefault("openbao_client_factory", self.openbao_factory)
            component.install(cfg)

        log.info("%s installed on %s", component.name, host.hostname)
        return result, bool(cfg.get_string("api_key"))

    # ------------------------------------------------------------------
    # best-effort follow-ups
    # ------------------------------------------------------------------
    def _record_state(self, component: Component, result: ReconcileResult, api_key_used: bool) -> None:
        changed = record_install(
            self.config,
            flags=component.state_flags,
            component=component.name,
            api_key_used=api_key_used,
        )
        if changed:
            self._save_state(component, result)

    def _save_state(self, component: Component, result: ReconcileResult) -> None:
        try:
            self.store.save(self.config)
        except FoundryError as exc:
            msg = f"failed to save setup state: {exc}"
            log.warning(msg)
            result.warnings.append(msg)
            self._emit(StateSaveFailed, component.name, error=str(exc))

    def _create_zones(self, component: Component, result: ReconcileResult) -> None:
        log.info("Creating DNS zones in PowerDNS...")
        try:
            ensure_zones(self.config, self._dns_client(), cancel=self.cancel)
        except CancelledError:
            raise
        except FoundryError as exc:
            msg = f"DNS zone creation failed: {exc}"
            log.warning(msg)
            result.warnings.append(msg)
            self._emit(DNSRegistrationFailed, component.name, error=str(exc))
            return

        self.config.setup_state.dns_zones_created = True
        self._save_state(component, result)

    def _register_dns(self, component: Component, result: ReconcileResult) -> None:
        try:
            register_after_install(component.name, component.dns_name, self.config, self._dns_client)
        except FoundryError as exc:
            msg = f"DNS registration failed: {exc}"
            log.warning(msg)
            result.warnings.append(msg)
            self._emit(DNSRegistrationFailed, component.name, error=str(exc))
