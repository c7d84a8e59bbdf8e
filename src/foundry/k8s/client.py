# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/k8s/client.py
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from kubernetes import client, config, utils
from kubernetes.client.exceptions import ApiException

from foundry.errors import KubeError

log = logging.getLogger("foundry")


@dataclass(frozen=True)
class Pod:
    name: str
    namespace: str
    status: str    # pod phase: Pending, Running, Succeeded, Failed, Unknown


class KubeClient:
    """
    Cluster-introspection client backed by the official kubernetes package.
    """

    def __init__(self, kubeconfig: str, context: Optional[str] = None):
        try:
            self.api_client = config.new_client_from_config(config_file=kubeconfig, context=context)
        except Exception as exc:
            raise KubeError(f"failed to load kubeconfig {kubeconfig}: {exc}") from exc
        self.core_v1 = client.CoreV1Api(self.api_client)
        self.apps_v1 = client.AppsV1Api(self.api_client)
        self.ext_v1 = client.ApiextensionsV1Api(self.api_client)

    def get_pods(self, namespace: str) -> list[Pod]:
        try:
            resp = self.core_v1.list_namespaced_pod(namespace=namespace)
        except ApiException as exc:
            raise KubeError(f"failed to list pods in {namespace}: {exc.reason}") from exc
        return [
            Pod(
                name=p.metadata.name,
                namespace=p.metadata.namespace,
                status=(p.status.phase if p.status else "Unknown") or "Unknown",
            )
            for p in resp.items
        ]

    def get_secret(self, namespace: str, name: str) -> dict[str, str]:
        """Secret data with values base64-decoded."""
        try:
            secret = self.core_v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as exc:
            raise KubeError(f"failed to get secret {namespace}/{name}: {exc.reason}") from exc
        return {
            k: base64.b64decode(v).decode("utf-8")
            for k, v in (secret.data or {}).items()
        }

    def crd_exists(self, name: str) -> bool:
        try:
            self.ext_v1.read_custom_resource_definition(name=name)
        except ApiException as exc:
            if exc.status == 404:
                return False
            raise KubeError(f"failed to check CRD {name}: {exc.reason}") from exc
        return True

    def apply_manifest(self, docs: Iterable[dict]) -> None:
        for doc in docs:
            kind = doc.get("kind", "?")
            name = doc.get("metadata", {}).get("name", "?")
            try:
                utils.create_from_dict(self.api_client, doc)
            except utils.FailToCreateError as exc:
                # 409 means the object is already there
                if all(getattr(e, "status", None) == 409 for e in exc.api_exceptions):
                    log.debug("[kube] %s/%s already exists", kind, name)
                    continue
                raise KubeError(f"failed to apply {kind}/{name}: {exc}") from exc

    def patch_deployment_args(self, namespace: str, name: str, old_arg: str, new_arg: str) -> bool:
        """
        Replace every argument of the first container that starts with
        `old_arg` by `new_arg` (an empty `new_arg` drops it). For flags a
        chart does not expose as values.

        Returns False, and writes nothing, when no argument matched.
        """
        try:
            deploy = self.apps_v1.read_namespaced_deployment(name=name, namespace=namespace)
        except ApiException as exc:
            raise KubeError(f"failed to get deployment {namespace}/{name}: {exc.reason}") from exc

        containers = deploy.spec.template.spec.containers or []
        if not containers:
            raise KubeError(f"deployment {namespace}/{name} has no containers")

        container = containers[0]
        args: list[str] = []
        found = False
        for arg in container.args or []:
            if arg.startswith(old_arg):
                found = True
                if new_arg:
                    args.append(new_arg)
            else:
                args.append(arg)
        if not found:
            return False

        container.args = args
        try:
            self.apps_v1.replace_namespaced_deployment(name=name, namespace=namespace, body=deploy)
        except ApiException as exc:
            raise KubeError(f"failed to update deployment {namespace}/{name}: {exc.reason}") from exc
        log.debug("[kube] %s/%s: %s -> %s", namespace, name, old_arg, new_arg or "(removed)")
        return True
