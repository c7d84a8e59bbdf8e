# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/external_dns.py

from __future__ import annotations

from typing import Any, Dict

from foundry.component.base import ComponentConfig, ReleaseRef
from .cluster import HelmComponent


class ExternalDNSComponent(HelmComponent):
    """Publishes Service/Gateway hostnames into PowerDNS."""

    name = "external-dns"
    dependencies = ()
    release = ReleaseRef("external-dns", "external-dns")

    repo_name = "external-dns"
    repo_url = "https://kubernetes-sigs.github.io/external-dns/"
    chart = "external-dns/external-dns"
    default_version = "1.15.0"

    def values(self, cfg: ComponentConfig) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "sources": ["service", "ingress", "gateway-httproute"],
            "policy": "upsert-only",
            "registry": "txt",
            "txtOwnerId": cfg.get_string("txt_owner_id") or "foundry",
        }
        domains = cfg.get_string_list("domain_filters") or []
        if domains:
            values["domainFilters"] = domains

        api_url = cfg.get_string("powerdns_api_url")
        if api_url:
            values["provider"] = {"name": "pdns"}
            values["extraArgs"] = [
                f"--pdns-server={api_url}",
                f"--pdns-api-key={cfg.get_string('powerdns_api_key') or ''}",
            ]
        return values
