# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/state/store.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import yaml

from foundry.config.loader import load_raw
from foundry.config.models import DNSConfig, SetupState, StackConfig
from foundry.errors import ConfigError

log = logging.getLogger("foundry")

STATE_KEY = "_setup_state"
DNS_API_KEY_REF = "${secret:dns:api_key}"


class StateStore:
    """
    Setup state persisted inside the stack configuration file.

    The file is read once at the start of a reconciliation and rewritten once
    at the end. There is no lock around the read-modify-write: the last
    writer wins.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> SetupState:
        data = load_raw(self.path)
        section = data.get(STATE_KEY)
        if not section:
            return SetupState()
        return SetupState.model_validate(section)

    def save(self, cfg: StackConfig) -> None:
        """
        Rewrite the state and DNS sections of the file, keeping every other
        key exactly as it was on disk.
        """
        data = load_raw(self.path)
        data[STATE_KEY] = cfg.setup_state.model_dump()
        if cfg.dns is not None:
            data["dns"] = cfg.dns.model_dump(exclude_none=True)

        self._write(data)

    def reset(self) -> None:
        data = load_raw(self.path)
        state = SetupState.model_validate(data.get(STATE_KEY) or {})
        state.reset()
        data[STATE_KEY] = state.model_dump()
        self._write(data)

    def _write(self, data: dict) -> None:
        try:
            self.path.write_text(yaml.safe_dump(data, sort_keys=False))
        except OSError as exc:
            raise ConfigError(f"failed to write config file {self.path}: {exc}") from exc


def record_install(
    cfg: StackConfig,
    *,
    flags: Iterable[str],
    component: str,
    api_key_used: bool = False,
) -> bool:
    """
    Flip the setup-state flags owned by `component`. Returns False when the
    component owns no flags (nothing to persist).
    """
    flags = list(flags)
    if not flags:
        return False

    for flag in flags:
        if flag not in SetupState.model_fields:
            raise ConfigError(f"unknown setup state flag {flag!r} for component {component}")
        setattr(cfg.setup_state, flag, True)

    if component == "dns":
        if cfg.dns is None:
            cfg.dns = DNSConfig()
        # store the reference, not the key
        if api_key_used:
            cfg.dns.api_key = DNS_API_KEY_REF

    return True
