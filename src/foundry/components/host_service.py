# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/host_service.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from foundry.component.base import Component, ComponentConfig, ComponentStatus, Substrate
from foundry.errors import ConfigError

log = logging.getLogger("foundry")

TEMPLATES_DIR = Path(__file__).parent / "templates"
UNIT_DIR = "/etc/systemd/system"


class Executor(Protocol):
    def run(self, cmd: str, *, sudo: bool = False, timeout: int | None = None) -> tuple[int, str, str]: ...
    def execute(self, cmd: str, *, sudo: bool = False) -> str: ...
    def put_text(self, content: str, remote_path: str, *, sudo: bool = False) -> None: ...


def _jinja_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render(template: str, **context: Any) -> str:
    return _jinja_env().get_template(template).render(**context)


class HostServiceComponent(Component):
    """
    A containerized service on a single host, run by systemd.

    The SSH executor arrives as cfg["host"]. Installing is idempotent: files
    and units are rewritten, the image is pulled again and the units are
    restarted, so upgrade is the same operation with a new version.
    """

    substrate = Substrate.SSH
    runtime = "docker"
    units: Sequence[str] = ()
    default_version = "latest"

    # ------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------
    def executor(self, cfg: ComponentConfig) -> Executor:
        host = cfg.get("host")
        if host is None:
            raise ConfigError(f"[{self.name}] SSH executor not provided in config")
        return host

    def version(self, cfg: ComponentConfig) -> str:
        return cfg.get_string("version") or self.default_version

    def ensure_dirs(self, ex: Executor, *dirs: str) -> None:
        for d in dirs:
            ex.execute(f"mkdir -p {d} && chmod 755 {d}", sudo=True)

    def write_file(self, ex: Executor, path: str, content: str, mode: str = "644") -> None:
        ex.put_text(content, path, sudo=True)
        ex.execute(f"chmod {mode} {path}", sudo=True)

    def runtime_path(self, ex: Executor) -> str:
        return ex.execute(f"which {self.runtime}").strip() or self.runtime

    def install_unit(self, ex: Executor, unit: str, description: str, exec_start: str, runtime: str) -> None:
        content = render(
            "container.service.j2",
            name=unit,
            description=description,
            exec_start=exec_start,
            runtime=runtime,
        )
        self.write_file(ex, f"{UNIT_DIR}/{unit}.service", content)

    def installed_version(self, ex: Executor) -> str:
        rc, image, _ = ex.run(
            f"{self.runtime} inspect --format '{{{{.Config.Image}}}}' {self.units[0]}", sudo=True
        )
        image = image.strip()
        return image.rsplit(":", 1)[-1] if rc == 0 and ":" in image else ""

    def start_units(self, ex: Executor) -> None:
        ex.execute("systemctl daemon-reload", sudo=True)
        for unit in self.units:
            ex.execute(f"systemctl enable {unit}", sudo=True)
            ex.execute(f"systemctl restart {unit}", sudo=True)
            log.info("[%s] %s started", self.name, unit)

    # ------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------
    def upgrade(self, cfg: ComponentConfig) -> None:
        self.install(cfg)

    def status(self, cfg: ComponentConfig) -> ComponentStatus:
        ex = self.executor(cfg)
        installed = all(
            ex.run(f"test -f {UNIT_DIR}/{unit}.service")[0] == 0 for unit in self.units
        )
        if not installed:
            return ComponentStatus(installed=False, message="service not installed")

        inactive = []
        for unit in self.units:
            _, out, _ = ex.run(f"systemctl is-active {unit}")
            if out.strip() != "active":
                inactive.append(f"{unit}: {out.strip() or 'unknown'}")

        version = self.installed_version(ex)

        if inactive:
            return ComponentStatus(True, version, False, "; ".join(inactive))
        return ComponentStatus(True, version, True, "running")

    def uninstall(self, cfg: ComponentConfig) -> None:
        ex = self.executor(cfg)
        for unit in self.units:
            ex.run(f"systemctl disable --now {unit}", sudo=True)
            ex.execute(f"rm -f {UNIT_DIR}/{unit}.service", sudo=True)
        ex.execute("systemctl daemon-reload", sudo=True)
