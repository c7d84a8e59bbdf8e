# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/secrets/resolvers.py

from __future__ import annotations

import os
from typing import Protocol

from foundry.errors import SecretNotFoundError
from foundry.openbao.client import DEFAULT_MOUNT, OpenBaoClient
from .refs import ResolutionContext, SecretRef


class Resolver(Protocol):
    def resolve(self, ctx: ResolutionContext, ref: SecretRef) -> str: ...


class EnvResolver:
    """Reads FOUNDRY_SECRET_<INSTANCE>_<PATH>_<KEY> from the environment."""

    def resolve(self, ctx: ResolutionContext, ref: SecretRef) -> str:
        name = ctx.env_var_name(ref)
        value = os.environ.get(name, "")
        if not value:
            raise SecretNotFoundError(f"environment variable {name} not set")
        return value


class OpenBaoResolver:
    """
    Reads a KV v2 secret on every call. No caching: a rotated secret is
    picked up on the next resolve.
    """

    def __init__(self, client: OpenBaoClient, mount: str = DEFAULT_MOUNT):
        self.client = client
        self.mount = mount

    def resolve(self, ctx: ResolutionContext, ref: SecretRef) -> str:
        path = ctx.namespaced_path(ref)
        data = self.client.read_secret_v2(self.mount, path)
        if data is None:
            raise SecretNotFoundError(f"secret {self.mount}/{path} not found in OpenBAO")

        value = data.get(ref.key)
        if value is None:
            raise SecretNotFoundError(f"key {ref.key!r} not found in OpenBAO secret {self.mount}/{path}")
        return str(value)
