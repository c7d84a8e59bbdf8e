# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/zot.py

from __future__ import annotations

import json
import logging

from foundry.component.base import ComponentConfig
from foundry.config.models import ROLE_ZOT
from .host_service import HostServiceComponent

log = logging.getLogger("foundry")

DATA_DIR = "/var/lib/zot"
CONFIG_DIR = "/etc/zot"
DEFAULT_PORT = 5000


def zot_config(port: int) -> dict:
    return {
        "distSpecVersion": "1.1.0",
        "storage": {"rootDirectory": "/var/lib/registry", "gc": True, "dedupe": True},
        "http": {"address": "0.0.0.0", "port": str(port)},
        "log": {"level": "info"},
        "extensions": {
            "metrics": {"enable": True, "prometheus": {"path": "/metrics"}},
        },
    }


class ZotComponent(HostServiceComponent):
    name = "zot"
    dependencies = ("openbao", "dns")
    host_role = ROLE_ZOT
    state_flags = ("zot_installed",)
    dns_name = "zot"
    units = ("zot",)

    def install(self, cfg: ComponentConfig) -> None:
        ex = self.executor(cfg)
        port = cfg.get_int("port") or DEFAULT_PORT

        self.ensure_dirs(ex, DATA_DIR, CONFIG_DIR)
        self.write_file(ex, f"{CONFIG_DIR}/config.json", json.dumps(zot_config(port), indent=2))

        image = f"ghcr.io/project-zot/zot-linux-amd64:{self.version(cfg)}"
        log.info("[zot] pulling %s", image)
        ex.execute(f"{self.runtime} pull {image}", sudo=True)

        runtime = self.runtime_path(ex)
        exec_start = (
            f"{runtime} run --name zot -p {port}:{port} "
            f"-v {DATA_DIR}:/var/lib/registry -v {CONFIG_DIR}/config.json:/etc/zot/config.json:ro "
            f"{image} serve /etc/zot/config.json"
        )
        self.install_unit(ex, "zot", "Zot OCI Registry (Foundry)", exec_start, runtime)
        self.start_units(ex)
