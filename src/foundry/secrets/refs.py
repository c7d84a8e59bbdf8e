# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/secrets/refs.py

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Optional

from foundry.errors import ValidationError

# ${secret:path/to/secret:key}
_SECRET_REF = re.compile(r"^\$\{secret:([a-zA-Z0-9/_-]+):([a-zA-Z0-9_-]+)\}$")


@dataclass(frozen=True)
class SecretRef:
    path: str
    key: str
    raw: str = ""

    def __str__(self) -> str:
        return self.raw or f"${{secret:{self.path}:{self.key}}}"


def is_secret_ref(value: str) -> bool:
    value = value.strip()
    return value.startswith("${secret:") and value.endswith("}")


def parse_secret_ref(value: str) -> Optional[SecretRef]:
    """
    Parse ``${secret:path:key}``.

    Returns None when `value` is not a secret reference at all, and raises
    ValidationError when it looks like one but is malformed.
    """
    value = value.strip()
    if not is_secret_ref(value):
        return None

    m = _SECRET_REF.match(value)
    if not m:
        raise ValidationError(
            f"invalid secret reference format: {value} (expected: ${{secret:path:key}})"
        )
    return SecretRef(path=m.group(1), key=m.group(2), raw=value)


@dataclass(frozen=True)
class ResolutionContext:
    """Instance scoping for secret lookups (e.g. "myapp-prod")."""

    instance: str = ""
    namespace: str = ""

    def namespaced_path(self, ref: SecretRef) -> str:
        if not self.instance:
            return ref.path
        return posixpath.join(self.instance, ref.path)

    def full_key(self, ref: SecretRef) -> str:
        return f"{self.namespaced_path(ref)}:{ref.key}"

    def env_var_name(self, ref: SecretRef) -> str:
        """FOUNDRY_SECRET_<INSTANCE>_<PATH>_<KEY>, separators replaced by underscores."""
        full = f"{self.namespaced_path(ref)}_{ref.key}"
        for sep in ("/", "-", ":"):
            full = full.replace(sep, "_")
        return f"FOUNDRY_SECRET_{full.upper()}"
