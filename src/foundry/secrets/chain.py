# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/secrets/chain.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

from foundry.config.models import ROLE_OPENBAO, StackConfig
from foundry.errors import FoundryError, HostNotConfiguredError, SecretNotFoundError
from foundry.openbao.client import OpenBaoClient, api_url, read_root_token
from .refs import ResolutionContext, SecretRef, parse_secret_ref
from .resolvers import EnvResolver, OpenBaoResolver, Resolver

log = logging.getLogger("foundry")


class ChainResolver:
    """
    Tries each resolver in order; the first one that returns a value wins.
    """

    def __init__(self, *resolvers: Resolver):
        self.resolvers: List[Resolver] = list(resolvers)

    def resolve(self, ctx: ResolutionContext, ref: SecretRef) -> str:
        if not self.resolvers:
            raise SecretNotFoundError("no resolvers configured")

        errors: list[str] = []
        for i, resolver in enumerate(self.resolvers, start=1):
            try:
                return resolver.resolve(ctx, ref)
            except FoundryError as exc:
                errors.append(f"resolver {i}: {exc}")

        raise SecretNotFoundError(
            f"failed to resolve secret {ctx.full_key(ref)} after trying "
            f"{len(self.resolvers)} resolver(s):\n  " + "\n  ".join(errors)
        )

    def resolve_value(self, ctx: ResolutionContext, value: str) -> str:
        """Resolve `value` if it is a secret reference, otherwise return it as-is."""
        ref = parse_secret_ref(value)
        if ref is None:
            return value
        return self.resolve(ctx, ref)


def build_secret_chain(
    cfg: StackConfig,
    keys_dir: Path,
    *,
    client_factory: Callable[[str, str], OpenBaoClient] = OpenBaoClient,
) -> ChainResolver:
    """
    Environment first, OpenBAO second. OpenBAO is only added when both its
    address and a root token are available; otherwise the chain degrades to
    environment-only resolution without raising.
    """
    env = EnvResolver()

    try:
        address: Optional[str] = cfg.primary_address(ROLE_OPENBAO)
    except HostNotConfiguredError:
        address = None

    token = read_root_token(keys_dir, cfg.cluster.name) if address else None
    if not address or not token:
        log.debug("OpenBAO unavailable for secret resolution; using environment only")
        return ChainResolver(env)

    client = client_factory(api_url(address), token)
    return ChainResolver(env, OpenBaoResolver(client))
