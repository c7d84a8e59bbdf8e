# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/helm/errors.py
from foundry.errors import SubstrateError


class HelmError(SubstrateError):
    """Base class for Helm-related failures."""


class HelmListError(HelmError):
    """Raised when `helm list` output cannot be read."""
