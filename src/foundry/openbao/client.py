# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/openbao/client.py

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import requests

from foundry.errors import SecretBackendError

log = logging.getLogger("foundry")

DEFAULT_MOUNT = "foundry-core"
API_PORT = 8200


def api_url(address: str) -> str:
    return f"http://{address}:{API_PORT}"


def read_root_token(keys_dir: Path, cluster_name: str) -> Optional[str]:
    """
    Root token from <keys_dir>/<cluster>/keys.json, or None when the file is
    missing or unreadable.
    """
    material = load_key_material(keys_dir, cluster_name) or {}
    return material.get("root_token") or None


class OpenBaoClient:
    """
    Minimal KV v2 client for OpenBAO:
      - read a secret (None when absent)
      - write a secret
    """

    def __init__(self, address: str, token: str, *, timeout: int = 30):
        self.address = address.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {"X-Vault-Token": self.token, "Content-Type": "application/json"}

    def _url(self, mount: str, path: str) -> str:
        return f"{self.address}/v1/{mount}/data/{path.strip('/')}"

    def read_secret_v2(self, mount: str, path: str) -> Optional[dict[str, Any]]:
        url = self._url(mount, path)
        try:
            r = requests.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise SecretBackendError(f"failed to read secret {mount}/{path}: {exc}") from exc

        if r.status_code == 404:
            return None
        if r.status_code != 200:
            raise SecretBackendError(
                f"failed to read secret {mount}/{path}: {r.status_code} {r.text}"
            )
        return (r.json().get("data") or {}).get("data") or {}

    def write_secret_v2(self, mount: str, path: str, data: dict[str, Any]) -> None:
        url = self._url(mount, path)
        try:
            r = requests.post(url, json={"data": data}, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise SecretBackendError(f"failed to write secret {mount}/{path}: {exc}") from exc

        if r.status_code not in (200, 204):
            raise SecretBackendError(
                f"failed to write secret {mount}/{path}: {r.status_code} {r.text}"
            )

    # ------------------------- lifecycle (used by the openbao component) -------------------------

    def _sys(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> requests.Response:
        url = f"{self.address}/v1/sys/{path}"
        try:
            return requests.request(method, url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise SecretBackendError(f"{method} sys/{path} failed: {exc}") from exc

    def seal_status(self) -> dict[str, Any]:
        r = self._sys("GET", "seal-status")
        if r.status_code != 200:
            raise SecretBackendError(f"seal-status returned {r.status_code}: {r.text}")
        return r.json()

    def initialize(self, shares: int = 5, threshold: int = 3) -> dict[str, Any]:
        r = self._sys("PUT", "init", {"secret_shares": shares, "secret_threshold": threshold})
        if r.status_code != 200:
            raise SecretBackendError(f"init returned {r.status_code}: {r.text}")
        return r.json()

    def unseal(self, keys: list[str]) -> None:
        for key in keys:
            r = self._sys("PUT", "unseal", {"key": key})
            if r.status_code != 200:
                raise SecretBackendError(f"unseal returned {r.status_code}: {r.text}")
            if not r.json().get("sealed", True):
                return
        raise SecretBackendError("still sealed after applying all unseal keys")

    def enable_kv_v2(self, mount: str = DEFAULT_MOUNT) -> None:
        r = self._sys("POST", f"mounts/{mount}", {"type": "kv", "options": {"version": "2"}})
        if r.status_code in (200, 204):
            return
        if r.status_code == 400 and "already in use" in r.text:
            log.debug("KV mount %s already enabled", mount)
            return
        raise SecretBackendError(f"failed to enable KV v2 at {mount}: {r.status_code} {r.text}")


def save_key_material(keys_dir: Path, cluster_name: str, material: dict[str, Any]) -> Path:
    """Write init output (unseal keys + root token) to <keys_dir>/<cluster>/keys.json, 0600."""
    keys_path = keys_dir / cluster_name / "keys.json"
    keys_path.parent.mkdir(parents=True, exist_ok=True)
    keys_path.write_text(json.dumps(material, indent=2))
    keys_path.chmod(0o600)
    return keys_path


def load_key_material(keys_dir: Path, cluster_name: str) -> Optional[dict[str, Any]]:
    keys_path = keys_dir / cluster_name / "keys.json"
    try:
        data = json.loads(keys_path.read_text())
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None
