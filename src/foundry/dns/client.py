# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/dns/client.py

from __future__ import annotations

import logging
from typing import Any

import requests

from foundry.errors import DNSClientError

log = logging.getLogger("foundry")

API_PORT = 8081
DEFAULT_TTL = 3600


def api_url(address: str) -> str:
    return f"http://{address}:{API_PORT}"


def fqdn(name: str) -> str:
    return name if name.endswith(".") else f"{name}."


class PowerDNSClient:
    """
    Client for the PowerDNS authoritative HTTP API.

    Records are written with changetype REPLACE, so writing the same record
    twice leaves the zone unchanged.
    """

    def __init__(self, base_url: str, api_key: str, *, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        headers = {"X-API-Key": self.api_key}
        try:
            r = requests.request(method, url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DNSClientError(f"{method} {path} failed: {exc}") from exc

        if r.status_code >= 400:
            raise DNSClientError(f"{method} {path} returned {r.status_code}: {r.text}")
        return r

    def add_record(self, zone: str, name: str, rtype: str, content: str, ttl: int = DEFAULT_TTL) -> None:
        if not (zone and name and rtype and content):
            raise DNSClientError("zone, name, type, and content are required")

        rrset = {
            "name": name,
            "type": rtype,
            "ttl": ttl if ttl > 0 else DEFAULT_TTL,
            "changetype": "REPLACE",
            "records": [{"content": content, "disabled": False}],
        }
        self._request("PATCH", f"/api/v1/servers/localhost/zones/{zone}", {"rrsets": [rrset]})

    def add_a_record(self, zone: str, short_name: str, ip: str) -> str:
        """
        Create or replace ``<short_name>.<zone>`` -> ip. Returns the FQDN written.
        """
        zone = fqdn(zone)
        name = short_name
        if not name.endswith("."):
            if name.endswith(zone[:-1]):
                name = f"{name}."
            else:
                name = f"{name}.{zone}"

        log.debug("[dns] A %s -> %s (zone %s)", name, ip, zone)
        self.add_record(zone, name, "A", ip)
        return name

    # ------------------------- zones -------------------------

    def list_zones(self) -> list[str]:
        """Names of the zones the server holds, with trailing dots."""
        r = self._request("GET", "/api/v1/servers/localhost/zones")
        try:
            return [z["name"] for z in r.json()]
        except (ValueError, TypeError, KeyError) as exc:
            raise DNSClientError(f"unexpected zone listing: {r.text[:200]}") from exc

    def create_zone(self, name: str, kind: str = "Native") -> None:
        if not name:
            raise DNSClientError("zone name cannot be empty")
        self._request(
            "POST",
            "/api/v1/servers/localhost/zones",
            {"name": fqdn(name), "kind": kind, "nameservers": []},
        )
