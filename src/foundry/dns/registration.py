# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/dns/registration.py

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Protocol, Set

from foundry.config.models import ROLE_DNS, ROLE_OPENBAO, ROLE_ZOT, StackConfig
from foundry.errors import DNSClientError, HealthCheckTimeoutError, HostNotConfiguredError
from foundry.secrets.chain import ChainResolver
from foundry.secrets.refs import ResolutionContext
from foundry.utils.poll import poll_until
from .client import PowerDNSClient, api_url, fqdn

log = logging.getLogger("foundry")


class RecordWriter(Protocol):
    def add_a_record(self, zone: str, short_name: str, ip: str) -> str: ...


class ZoneWriter(Protocol):
    def list_zones(self) -> List[str]: ...
    def create_zone(self, name: str, kind: str = "Native") -> None: ...


ClientFactory = Callable[[], RecordWriter]

K8S_NAME = "k8s"
ZONE_API_TIMEOUT = 30

# short DNS name -> role of the host the record points at
_ROLE_FOR_NAME = {
    "openbao": ROLE_OPENBAO,
    "dns": ROLE_DNS,
    "zot": ROLE_ZOT,
}


def build_dns_client(cfg: StackConfig, secrets: ChainResolver) -> PowerDNSClient:
    """PowerDNS client for the primary dns host, API key resolved through `secrets`."""
    address = cfg.primary_address(ROLE_DNS)
    if cfg.dns is None or not cfg.dns.api_key:
        raise DNSClientError("DNS API key not configured")

    api_key = secrets.resolve_value(ResolutionContext(), cfg.dns.api_key)
    return PowerDNSClient(api_url(address), api_key)


def _target_ip(cfg: StackConfig, dns_name: str) -> str:
    if dns_name == K8S_NAME:
        if not cfg.cluster.vip:
            raise DNSClientError("no K8s VIP configured")
        return cfg.cluster.vip
    role = _ROLE_FOR_NAME.get(dns_name)
    if role is None:
        raise DNSClientError(f"unknown DNS service name: {dns_name}")
    return cfg.primary_address(role)


def backfill(cfg: StackConfig, client: RecordWriter) -> List[str]:
    """
    Register everything that was installed before DNS existed.
    Stops at the first failing record.
    """
    zone = cfg.cluster.primary_domain
    state = cfg.setup_state

    wanted: List[str] = []
    if state.openbao_installed:
        wanted.append("openbao")
    wanted.append("dns")
    if state.zot_installed:
        wanted.append("zot")
    if state.k8s_installed and cfg.cluster.vip:
        wanted.append(K8S_NAME)

    registered: List[str] = []
    for name in wanted:
        try:
            ip = _target_ip(cfg, name)
        except HostNotConfiguredError:
            log.debug("[dns] no host for %s, not registering", name)
            continue
        try:
            registered.append(client.add_a_record(zone, name, ip))
        except DNSClientError as exc:
            raise DNSClientError(f"failed to register {name} DNS record: {exc}") from exc

    if registered:
        log.info("Registered %d DNS record(s)", len(registered))
    else:
        log.info("No existing components to register")
    return registered


def self_register(cfg: StackConfig, client: RecordWriter, dns_name: str) -> str:
    zone = cfg.cluster.primary_domain
    ip = _target_ip(cfg, dns_name)
    record = client.add_a_record(zone, dns_name, ip)
    log.info("DNS record registered: %s -> %s", record, ip)
    return record


def register_after_install(
    component: str,
    dns_name: Optional[str],
    cfg: StackConfig,
    client_factory: ClientFactory,
) -> List[str]:
    """
    Bidirectional registration after a successful install:
      - dns itself looks backward and registers what already exists
      - openbao / zot / k3s register themselves when DNS is already up

    Returns the FQDNs written (empty when nothing applied). The client is only
    built when a record is actually going to be written.
    """
    if not cfg.cluster.primary_domain:
        return []

    if component == "dns":
        log.info("Registering DNS records for existing components...")
        return backfill(cfg, client_factory())

    if dns_name and cfg.setup_state.dns_installed:
        log.info("Registering DNS record for %s...", dns_name)
        return [self_register(cfg, client_factory(), dns_name)]

    return []


# ------------------------------------------------------------------------------
# Zones
# ------------------------------------------------------------------------------

def _existing_zones(
    client: ZoneWriter,
    *,
    timeout: float,
    interval: float,
    cancel: Optional[threading.Event],
) -> Set[str]:
    """Zone names on the server, waiting for a freshly started API to answer."""
    found: List[Set[str]] = []

    def listed() -> bool:
        try:
            found.append(set(client.list_zones()))
        except DNSClientError as exc:
            log.debug("[dns] API not ready: %s", exc)
            return False
        return True

    if not listed():
        log.info("Waiting for PowerDNS API to become ready...")
        try:
            poll_until(listed, timeout=timeout, interval=interval, cancel=cancel, describe="PowerDNS API")
        except HealthCheckTimeoutError as exc:
            raise DNSClientError(f"PowerDNS API not ready: {exc}") from exc
    return found[-1]


def ensure_zones(
    cfg: StackConfig,
    client: ZoneWriter,
    *,
    timeout: float = ZONE_API_TIMEOUT,
    interval: float = 1.0,
    cancel: Optional[threading.Event] = None,
) -> List[str]:
    """
    Create the primary domain and every configured zone that PowerDNS does
    not hold yet. Returns the zones created.
    """
    zones = cfg.local_zones()
    if not zones:
        log.info("No primary_domain configured, skipping zone creation")
        return []

    existing = _existing_zones(client, timeout=timeout, interval=interval, cancel=cancel)
    created: List[str] = []
    for zone in zones:
        if fqdn(zone) in existing:
            log.info("Zone %s already exists (skipping)", zone)
            continue
        log.info("Creating zone %s", zone)
        try:
            client.create_zone(zone)
        except DNSClientError as exc:
            raise DNSClientError(f"failed to create zone {zone}: {exc}") from exc
        created.append(zone)
    return created
