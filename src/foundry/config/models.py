# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/config/models.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from foundry.errors import HostNotConfiguredError


ROLE_OPENBAO = "openbao"
ROLE_DNS = "dns"
ROLE_ZOT = "zot"
ROLE_CLUSTER_CONTROL_PLANE = "cluster-control-plane"
ROLE_CLUSTER_WORKER = "cluster-worker"


class Host(BaseModel):
    """A machine reachable over SSH. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    hostname: str
    address: str
    port: int = 22
    user: str = "root"
    roles: List[str] = Field(default_factory=list)

    def has_role(self, role: str) -> bool:
        return role in self.roles


class ClusterConfig(BaseModel):
    name: str
    primary_domain: str = ""
    vip: str = ""


class DNSZone(BaseModel):
    name: str
    public: bool = False
    public_cname: Optional[str] = None


class DNSConfig(BaseModel):
    backend: str = "gsqlite3"
    forwarders: List[str] = Field(default_factory=lambda: ["8.8.8.8", "1.1.1.1"])
    api_key: str = ""                 # secret reference, never the value
    infrastructure_zones: List[DNSZone] = Field(default_factory=list)
    kubernetes_zones: List[DNSZone] = Field(default_factory=list)


class SetupState(BaseModel):
    """
    Which foundational pieces have completed installation.
    Source of truth for dependency checks across invocations.
    """

    network_planned: bool = False
    network_validated: bool = False
    openbao_installed: bool = False
    openbao_initialized: bool = False
    dns_installed: bool = False
    dns_zones_created: bool = False
    zot_installed: bool = False
    k8s_installed: bool = False
    stack_complete: bool = False

    def is_complete(self) -> bool:
        """Every step foundry runs has completed."""
        return self.next_step() == "complete"

    def reset(self) -> None:
        for f in type(self).model_fields:
            setattr(self, f, False)

    def next_step(self) -> str:
        """
        Name of the first setup step that has not completed yet.

        network_planned and network_validated record network planning done
        outside foundry and do not gate anything here.
        """
        steps = [
            ("openbao_installed", "openbao_install"),
            # initialization happens as part of the install step
            ("openbao_initialized", "openbao_install"),
            ("dns_installed", "dns_install"),
            # zones are created by the dns install
            ("dns_zones_created", "dns_install"),
            ("zot_installed", "zot_install"),
            ("k8s_installed", "k8s_install"),
        ]
        for flag, step in steps:
            if not getattr(self, flag):
                return step
        return "complete"


class StackConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cluster: ClusterConfig
    hosts: List[Host] = Field(default_factory=list)
    dns: Optional[DNSConfig] = None
    components: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    setup_state: SetupState = Field(default_factory=SetupState, alias="_setup_state")

    # ------------------------------------------------------------------
    # Role-based host lookup
    # ------------------------------------------------------------------

    def hosts_by_role(self, role: str) -> List[Host]:
        return [h for h in self.hosts if h.has_role(role)]

    def primary_host(self, role: str) -> Host:
        hosts = self.hosts_by_role(role)
        if not hosts:
            raise HostNotConfiguredError(f"no hosts with {role} role found")
        return hosts[0]

    def primary_address(self, role: str) -> str:
        return self.primary_host(role).address

    def component_settings(self, name: str) -> Dict[str, Any]:
        return dict(self.components.get(name) or {})

    def local_zones(self) -> List[str]:
        """primary domain + kubernetes zones + infrastructure zones, deduplicated."""
        zones: List[str] = []
        if self.cluster.primary_domain:
            zones.append(self.cluster.primary_domain)
        if self.dns:
            for zone in [*self.dns.kubernetes_zones, *self.dns.infrastructure_zones]:
                if zone.name not in zones:
                    zones.append(zone.name)
        return zones
