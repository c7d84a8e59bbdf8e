# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/component/inputs.py

"""
Per-invocation ComponentConfig assembly.

Values come from three places, later ones winning: the component's section
of the stack file, values read from components it depends on (credentials,
endpoints, API keys), and CLI flags.
"""

from __future__ import annotations

import logging
import secrets as pysecrets
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from foundry.config.models import ROLE_DNS, ROLE_OPENBAO, ROLE_ZOT, Host, StackConfig
from foundry.errors import FoundryError, HostNotConfiguredError, KubeError, SecretBackendError
from foundry.openbao.client import DEFAULT_MOUNT, OpenBaoClient, api_url, read_root_token
from foundry.secrets.chain import ChainResolver
from foundry.secrets.refs import ResolutionContext
from foundry.components.seaweedfs import CREDENTIALS_SECRET, S3_ENDPOINT, S3_REGION
from foundry.components.prometheus import PROMETHEUS_URL
from foundry.components.loki import LOKI_URL
from foundry.dns.client import api_url as dns_api_url
from .base import ComponentConfig

log = logging.getLogger("foundry")

DNS_SECRET_PATH = "dns"
DNS_SECRET_KEY = "api_key"
ZOT_PORT = 5000


def _address(stack: StackConfig, role: str) -> Optional[str]:
    try:
        return stack.primary_address(role)
    except HostNotConfiguredError:
        return None


# ------------------------------------------------------------------------------
# DNS API key
# ------------------------------------------------------------------------------

def ensure_dns_api_key(
    stack: StackConfig,
    keys_dir: Path,
    *,
    client_factory: Callable[[str, str], OpenBaoClient] = OpenBaoClient,
) -> str:
    """
    The PowerDNS API key stored in OpenBAO at <mount>/dns, generating and
    storing a new 256-bit key on first use.
    """
    address = _address(stack, ROLE_OPENBAO)
    if not address:
        raise SecretBackendError("OpenBAO host not configured")
    token = read_root_token(keys_dir, stack.cluster.name)
    if not token:
        raise SecretBackendError(
            f"failed to read OpenBAO root token from {keys_dir / stack.cluster.name / 'keys.json'}"
        )

    client = client_factory(api_url(address), token)
    existing = client.read_secret_v2(DEFAULT_MOUNT, DNS_SECRET_PATH) or {}
    if existing.get(DNS_SECRET_KEY):
        log.info("Using existing DNS API key from OpenBAO")
        return str(existing[DNS_SECRET_KEY])

    log.info("Generating DNS API key and storing it in OpenBAO")
    key = pysecrets.token_hex(32)
    client.write_secret_v2(DEFAULT_MOUNT, DNS_SECRET_PATH, {DNS_SECRET_KEY: key})
    return key


# ------------------------------------------------------------------------------
# SSH components
# ------------------------------------------------------------------------------

def ssh_config(
    name: str,
    stack: StackConfig,
    host: Host,
    executor: Any,
    *,
    version: Optional[str],
    keys_dir: Path,
    kubeconfig: Path,
    dns_api_key: Callable[[], str],
) -> ComponentConfig:
    cfg = ComponentConfig(stack.component_settings(name))
    cfg.update(
        host=executor,
        address=host.address,
        cluster_name=stack.cluster.name,
        keys_dir=str(keys_dir),
    )
    if version:
        cfg["version"] = version
    if stack.cluster.vip:
        cfg["cluster_vip"] = stack.cluster.vip

    openbao = _address(stack, ROLE_OPENBAO)
    if openbao:
        cfg["api_url"] = api_url(openbao)

    if name == "dns":
        cfg["api_key"] = dns_api_key()
        cfg["local_zones"] = stack.local_zones()
        if stack.dns is not None:
            cfg.setdefault("forwarders", list(stack.dns.forwarders))
            cfg.setdefault("backend", stack.dns.backend)

    if name == "k3s":
        cfg["kubeconfig_path"] = str(kubeconfig)
        zot = _address(stack, ROLE_ZOT)
        if zot and stack.setup_state.zot_installed:
            cfg.setdefault("registry", f"{zot}:{ZOT_PORT}")

    return cfg


# ------------------------------------------------------------------------------
# Kubernetes components: values read from dependencies
# ------------------------------------------------------------------------------

def seaweedfs_credentials(kube) -> tuple[str, str]:
    data = kube.get_secret(CREDENTIALS_SECRET.namespace, CREDENTIALS_SECRET.name)
    for key in ("accessKey", "secretKey"):
        if not data.get(key):
            raise KubeError(f"{key} not found in seaweedfs secret")
    return data["accessKey"], data["secretKey"]


def external_targets(stack: StackConfig) -> List[Dict[str, Any]]:
    """Prometheus scrape targets for the installed host services."""
    state = stack.setup_state
    targets: List[Dict[str, Any]] = []

    openbao = _address(stack, ROLE_OPENBAO)
    if state.openbao_installed and openbao:
        targets.append({
            "name": "openbao",
            "targets": [f"{openbao}:8200"],
            "metrics_path": "/v1/sys/metrics",
            "params": {"format": ["prometheus"]},
        })

    zot = _address(stack, ROLE_ZOT)
    if state.zot_installed and zot:
        targets.append({"name": "zot", "targets": [f"{zot}:{ZOT_PORT}"], "metrics_path": "/metrics"})

    dns = _address(stack, ROLE_DNS)
    if state.dns_installed and dns:
        targets.append({"name": "powerdns-auth", "targets": [f"{dns}:8081"], "metrics_path": "/metrics"})
        targets.append({"name": "powerdns-recursor", "targets": [f"{dns}:8082"], "metrics_path": "/metrics"})

    return targets


def dependency_values(
    name: str,
    stack: StackConfig,
    *,
    kube,
    secrets: Callable[[], ChainResolver],
    warnings: List[str],
) -> Dict[str, Any]:
    """
    Settings a Kubernetes component needs from what is already installed.
    Soft failures (optional inputs) are appended to `warnings`.
    """
    values: Dict[str, Any] = {}

    if name in ("loki", "velero"):
        access_key, secret_key = seaweedfs_credentials(kube)
        values.update(
            s3_endpoint=S3_ENDPOINT,
            s3_region=S3_REGION,
            s3_bucket=name,
            s3_access_key=access_key,
            s3_secret_key=secret_key,
        )

    elif name == "grafana":
        values.update(prometheus_url=PROMETHEUS_URL, loki_url=LOKI_URL)

    elif name == "prometheus":
        targets = external_targets(stack)
        if targets:
            values["external_targets"] = targets

    elif name == "external-dns":
        dns = _address(stack, ROLE_DNS)
        if stack.dns is not None and stack.setup_state.dns_installed and dns:
            values["powerdns_api_url"] = dns_api_url(dns)
            if stack.dns.api_key:
                try:
                    values["powerdns_api_key"] = secrets().resolve_value(ResolutionContext(), stack.dns.api_key)
                except FoundryError as exc:
                    msg = f"could not resolve DNS API key for external-dns: {exc}"
                    log.warning(msg)
                    warnings.append(msg)

    return values
