# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/errors.py

from __future__ import annotations


class FoundryError(RuntimeError):
    """Base class for every error the orchestrator raises."""


# ------------------------------------------------------------------------------
# Validation (raised before any side effect)
# ------------------------------------------------------------------------------

class ValidationError(FoundryError):
    pass


class ComponentNotFoundError(ValidationError):
    def __init__(self, name: str):
        super().__init__(f"component {name!r} not found in registry")
        self.name = name


class MissingFlagError(ValidationError):
    pass


class UnknownSubstrateError(ValidationError):
    pass


class AlreadyRegisteredError(FoundryError):
    def __init__(self, name: str):
        super().__init__(f"component {name!r} is already registered")
        self.name = name


class CircularDependencyError(FoundryError):
    pass


class ConfigError(FoundryError):
    pass


# ------------------------------------------------------------------------------
# Dependencies
# ------------------------------------------------------------------------------

class DependencyNotSatisfiedError(FoundryError):
    def __init__(self, dependency: str, component: str | None = None):
        self.dependency = dependency
        self.component = component
        super().__init__(
            f"dependency {dependency!r} is not installed\n\n"
            f"Please run: foundry component install {dependency}"
        )


# ------------------------------------------------------------------------------
# Substrates
# ------------------------------------------------------------------------------

class SubstrateError(FoundryError):
    """A call into Helm, Kubernetes, SSH, OpenBAO or PowerDNS failed."""


class KubeError(SubstrateError):
    pass


class HostNotConfiguredError(SubstrateError):
    pass


class HostUnreachableError(SubstrateError):
    def __init__(self, hostname: str, reason: str):
        super().__init__(f"failed to connect to {hostname}: {reason}")
        self.hostname = hostname


class RemoteCommandError(SubstrateError):
    def __init__(self, command: str, exit_code: int, stdout: str = "", stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"command failed with exit code {exit_code}: {stderr.strip() or stdout.strip()}"
        )


class SecretBackendError(SubstrateError):
    pass


class DNSClientError(SubstrateError):
    pass


class ManualInterventionError(FoundryError):
    """
    An in-place repair of a stateful release failed. Automatic recovery
    would risk the release's persistent volumes, so the operator has to act.
    """

    def __init__(self, release: str, namespace: str, status: str, cause: Exception):
        self.release = release
        self.namespace = namespace
        self.status = status
        self.remediation = "\n".join(
            [
                "Manual intervention required. You may need to:",
                f"  1. Check pod status: kubectl get pods -n {namespace}",
                f"  2. Check PVC status: kubectl get pvc -n {namespace}",
                "  3. If data loss is acceptable, uninstall manually: "
                f"helm uninstall {release} -n {namespace}",
            ]
        )
        super().__init__(
            f"failed to upgrade {release} (status: {status}, manual intervention required): "
            f"{cause}\n{self.remediation}"
        )


# ------------------------------------------------------------------------------
# Secrets / health
# ------------------------------------------------------------------------------

class SecretNotFoundError(FoundryError):
    pass


class HealthCheckTimeoutError(FoundryError):
    pass


class CancelledError(FoundryError):
    pass
