# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/config/loader.py

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from foundry.errors import ConfigError
from .models import StackConfig

log = logging.getLogger("foundry")

DEFAULT_CONFIG_NAME = "stack.yaml"


def config_dir() -> Path:
    """
    FOUNDRY_CONFIG_DIR when set, otherwise ~/.foundry.
    """
    env = os.environ.get("FOUNDRY_CONFIG_DIR")
    if env:
        return Path(env)
    return Path.home() / ".foundry"


def kubeconfig_path() -> Path:
    return config_dir() / "kubeconfig"


def openbao_keys_dir() -> Path:
    return config_dir() / "openbao-keys"


def ssh_keys_dir() -> Path:
    return config_dir() / "keys"


def find_config(name: str | None = None) -> Path:
    """
    Locate the stack configuration using this priority:

    1. ``name`` as a path, when it points at an existing file
    2. ``name`` (with or without .yaml) inside the config dir
    3. ``stack.yaml`` inside the config dir
    """
    if name:
        p = Path(name).expanduser()
        if p.is_file():
            return p
        filename = name if name.endswith((".yaml", ".yml")) else f"{name}.yaml"
        p = config_dir() / filename
        if p.is_file():
            return p
        raise ConfigError(f"config {name!r} not found")

    p = config_dir() / DEFAULT_CONFIG_NAME
    if not p.is_file():
        raise ConfigError(
            f"no configuration found at {p}\n\nHint: create it, or pass --config <path>"
        )
    return p


def load_raw(path: Path) -> dict:
    """Load a YAML document as a plain dict, without env expansion."""
    try:
        data = yaml.safe_load(Path(path).read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


def load_config(path: str | Path) -> StackConfig:
    """
    Load and validate a stack config.

    ``${ENV_VAR}`` placeholders are expanded at load time. Secret references
    (``${secret:path:key}``) are left untouched: they are not valid variable
    names, so expansion skips them.
    """
    path = Path(path)
    try:
        raw = path.read_text()
    except OSError as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc

    log.debug("Loading config from %s", path)
    try:
        data = yaml.safe_load(os.path.expandvars(raw)) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config file {path}: {exc}") from exc

    try:
        return StackConfig.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigError(f"invalid config {path}: {exc}") from exc

