# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/openbao.py

from __future__ import annotations

import logging
from pathlib import Path

from foundry.component.base import ComponentConfig
from foundry.config.models import ROLE_OPENBAO
from foundry.errors import ConfigError, SecretBackendError
from foundry.openbao.client import (
    DEFAULT_MOUNT,
    OpenBaoClient,
    load_key_material,
    save_key_material,
)
from foundry.utils.poll import poll_until
from .host_service import HostServiceComponent, render

log = logging.getLogger("foundry")

DATA_DIR = "/var/lib/openbao"
CONFIG_DIR = "/etc/openbao"
# uid/gid of the openbao user inside the image
CONTAINER_UID = "374:374"


class OpenBaoComponent(HostServiceComponent):
    """
    OpenBAO secrets manager. Installed first: everything else keeps its
    secrets here. Install also initializes and unseals it and enables the
    KV v2 mount the rest of the stack reads from.
    """

    name = "openbao"
    dependencies = ()
    host_role = ROLE_OPENBAO
    state_flags = ("openbao_installed", "openbao_initialized")
    dns_name = "openbao"
    units = ("openbao",)
    default_version = "2.0.0"

    def install(self, cfg: ComponentConfig) -> None:
        ex = self.executor(cfg)
        api_url = cfg.get_string("api_url")
        keys_dir = cfg.get_string("keys_dir")
        cluster = cfg.get_string("cluster_name") or "default"
        if not api_url:
            raise ConfigError("[openbao] api_url not provided in config")
        if not keys_dir:
            raise ConfigError("[openbao] keys_dir not provided in config")

        self.ensure_dirs(ex, DATA_DIR, CONFIG_DIR)
        ex.execute(f"chown {CONTAINER_UID} {DATA_DIR} {CONFIG_DIR}", sudo=True)
        self.write_file(
            ex,
            f"{CONFIG_DIR}/config.hcl",
            render("openbao.hcl.j2", address="0.0.0.0:8200", api_url=api_url),
        )
        ex.execute(f"chown {CONTAINER_UID} {CONFIG_DIR}/config.hcl", sudo=True)

        image = f"quay.io/openbao/openbao:{self.version(cfg)}"
        log.info("[openbao] pulling %s", image)
        ex.execute(f"{self.runtime} pull {image}", sudo=True)

        runtime = self.runtime_path(ex)
        exec_start = " ".join([
            f"{runtime} run",
            "--name openbao",
            f"--user {CONTAINER_UID}",
            "--security-opt apparmor=unconfined",
            "-p 8200:8200",
            f"-v {DATA_DIR}:/vault/data",
            f"-v {CONFIG_DIR}:/vault/config",
            "--cap-add=IPC_LOCK",
            image,
            "server",
            "-config=/vault/config/config.hcl",
        ])
        self.install_unit(ex, "openbao", "OpenBAO Secret Management", exec_start, runtime)
        self.start_units(ex)

        factory = cfg.get("openbao_client_factory") or OpenBaoClient
        self._initialize_and_unseal(factory, api_url, Path(keys_dir), cluster)

    def _initialize_and_unseal(self, factory, api_url: str, keys_dir: Path, cluster: str) -> None:
        client = factory(api_url, "")

        def reachable() -> bool:
            try:
                client.seal_status()
            except SecretBackendError:
                return False
            return True

        log.info("[openbao] waiting for API at %s", api_url)
        poll_until(reachable, timeout=60, interval=2, describe="OpenBAO API")

        status = client.seal_status()
        material = load_key_material(keys_dir, cluster)

        if not status.get("initialized"):
            log.info("[openbao] initializing (5 key shares, threshold 3)")
            material = client.initialize(shares=5, threshold=3)
            path = save_key_material(keys_dir, cluster, material)
            log.info("[openbao] key material saved to %s", path)
        elif material is None:
            raise SecretBackendError(
                f"OpenBAO is already initialized but no key material exists in {keys_dir / cluster}"
            )

        if client.seal_status().get("sealed", True):
            client.unseal(material.get("keys") or [])
            log.info("[openbao] unsealed")

        factory(api_url, material["root_token"]).enable_kv_v2(DEFAULT_MOUNT)
