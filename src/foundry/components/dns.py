# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/dns.py

from __future__ import annotations

import logging

from foundry.component.base import ComponentConfig
from foundry.config.models import ROLE_DNS
from foundry.errors import ConfigError
from .host_service import HostServiceComponent, render

log = logging.getLogger("foundry")

DATA_DIR = "/var/lib/powerdns"
CONFIG_DIR = "/etc/powerdns"
IMAGE_REGISTRY = "docker.io/powerdns"


class DNSComponent(HostServiceComponent):
    """
    PowerDNS authoritative server + recursor. The recursor answers on :53,
    forwards local zones to the authoritative server and everything else to
    the upstream forwarders.
    """

    name = "dns"
    dependencies = ("openbao",)
    host_role = ROLE_DNS
    state_flags = ("dns_installed",)
    dns_name = "dns"
    units = ("powerdns-auth", "powerdns-recursor")
    default_version = "49"

    def install(self, cfg: ComponentConfig) -> None:
        ex = self.executor(cfg)
        api_key = cfg.get_string("api_key")
        if not api_key:
            raise ConfigError("[dns] api_key not provided in config")

        tag = self.version(cfg)
        context = {
            "api_key": api_key,
            "backend": cfg.get_string("backend") or "gsqlite3",
            "local_zones": cfg.get_string_list("local_zones") or [],
            "forwarders": cfg.get_string_list("forwarders") or ["8.8.8.8", "1.1.1.1"],
        }

        self.ensure_dirs(ex, DATA_DIR, f"{CONFIG_DIR}/auth", f"{CONFIG_DIR}/recursor")
        # both files carry the API key
        self.write_file(ex, f"{CONFIG_DIR}/auth/pdns.conf", render("pdns.conf.j2", **context), mode="640")
        self.write_file(ex, f"{CONFIG_DIR}/recursor/recursor.conf", render("recursor.conf.j2", **context), mode="640")

        auth_image = f"{IMAGE_REGISTRY}/pdns-auth-{tag}"
        recursor_image = f"{IMAGE_REGISTRY}/pdns-recursor-{tag}"
        for image in (auth_image, recursor_image):
            log.info("[dns] pulling %s", image)
            ex.execute(f"{self.runtime} pull {image}", sudo=True)

        runtime = self.runtime_path(ex)
        self.install_unit(
            ex,
            "powerdns-auth",
            "PowerDNS Authoritative Server (Foundry)",
            f"{runtime} run --name powerdns-auth --network host "
            f"-v {CONFIG_DIR}/auth:/etc/powerdns -v {DATA_DIR}:/var/lib/powerdns "
            f"{auth_image} --config-dir=/etc/powerdns",
            runtime,
        )
        self.install_unit(
            ex,
            "powerdns-recursor",
            "PowerDNS Recursor (Foundry)",
            f"{runtime} run --name powerdns-recursor --network host "
            f"-v {CONFIG_DIR}/recursor:/etc/powerdns-recursor "
            f"{recursor_image} --config-dir=/etc/powerdns-recursor",
            runtime,
        )
        self.start_units(ex)

    def installed_version(self, ex) -> str:
        # image names carry the version (pdns-auth-49), tags are "latest"
        rc, image, _ = ex.run(
            f"{self.runtime} inspect --format '{{{{.Config.Image}}}}' powerdns-auth", sudo=True
        )
        image = image.strip().split(":", 1)[0]
        return image.rsplit("-", 1)[-1] if rc == 0 and "-" in image else ""
