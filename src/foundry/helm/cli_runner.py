# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/helm/cli_runner.py

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from typing import List

import yaml

from .errors import HelmError, HelmListError
from .models import InstallSpec, Release, RepoSpec

log = logging.getLogger("foundry")


class HelmCliRunner:
    """
    A pragmatic wrapper around the `helm` CLI.
    - Mirrors human CLI usage: 'repo add', 'install', 'upgrade', 'uninstall', 'list'.
    - Testable by mocking subprocess.run.
    """

    def __init__(
        self,
        kubeconfig: str | None = None,
        kube_context: str | None = None,
        env: dict[str, str] | None = None,
    ):
        self.kubeconfig = kubeconfig
        self.kube_context = kube_context
        self.env = env or {}

    # ------------------------- internal helpers -------------------------

    def _base(self) -> list[str]:
        cmd = ["helm"]
        if self.kubeconfig:
            cmd += ["--kubeconfig", self.kubeconfig]
        if self.kube_context:
            cmd += ["--kube-context", self.kube_context]
        return cmd

    def _run(self, argv: List[str], *, action: str) -> subprocess.CompletedProcess:
        log.debug("[helm] $ %s", " ".join(argv))
        try:
            cp = subprocess.run(
                argv,
                check=False,
                text=True,
                capture_output=True,
                env={**os.environ, **self.env} if self.env else None,
            )
        except OSError as exc:
            raise HelmError(f"failed to {action}: {exc}") from exc

        if cp.returncode != 0:
            stderr = (cp.stderr or "").strip()
            raise HelmError(f"failed to {action} (rc={cp.returncode}): {stderr}")
        return cp

    def _chart_args(self, spec: InstallSpec, values_file: str | None) -> list[str]:
        args = [spec.release_name, spec.chart, "-n", spec.namespace]
        if values_file:
            args += ["-f", values_file]
        if spec.version:
            args += ["--version", spec.version]
        if spec.wait:
            args += ["--wait", "--timeout", f"{spec.timeout_seconds}s"]
        return args

    def _with_values(self, spec: InstallSpec, build_argv) -> None:
        # inline values -> temp file passed with -f
        values_file = None
        if spec.values:
            with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as tf:
                yaml.safe_dump(spec.values, tf)
                values_file = tf.name
        try:
            build_argv(values_file)
        finally:
            if values_file:
                os.unlink(values_file)

    # ------------------------- chart-deployment contract -------------------------

    def add_repo(self, repo: RepoSpec) -> None:
        argv = self._base() + ["repo", "add", repo.name, repo.url]
        if repo.username and repo.password:
            argv += ["--username", repo.username, "--password", repo.password]
        if repo.force_update:
            argv.append("--force-update")
        self._run(argv, action=f"add helm repository {repo.name}")
        self._run(self._base() + ["repo", "update", repo.name], action=f"update helm repository {repo.name}")

    def install(self, spec: InstallSpec) -> None:
        def run(values_file):
            argv = self._base() + ["install"] + self._chart_args(spec, values_file)
            if spec.create_namespace:
                argv.append("--create-namespace")
            self._run(argv, action=f"install {spec.release_name}")

        self._with_values(spec, run)

    def upgrade(self, spec: InstallSpec) -> None:
        def run(values_file):
            argv = self._base() + ["upgrade"] + self._chart_args(spec, values_file)
            self._run(argv, action=f"upgrade {spec.release_name}")

        self._with_values(spec, run)

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
        timeout_seconds: int = 300,
    ) -> None:
        argv = self._base() + ["uninstall", release_name, "-n", namespace]
        if wait:
            argv += ["--wait", "--timeout", f"{timeout_seconds}s"]
        self._run(argv, action=f"uninstall {release_name}")

    def list(self, namespace: str) -> list[Release]:
        """
        All releases in `namespace`, including failed and pending ones.
        """
        argv = self._base() + ["list", "-n", namespace, "--all", "-o", "json"]
        cp = self._run(argv, action=f"list releases in {namespace}")
        try:
            items = json.loads(cp.stdout or "[]")
        except json.JSONDecodeError as exc:
            raise HelmListError(f"unexpected helm list output: {exc}") from exc

        return [
            Release(
                name=item.get("name", ""),
                namespace=item.get("namespace", namespace),
                status=item.get("status", ""),
                app_version=item.get("app_version", ""),
                chart=item.get("chart", ""),
                revision=int(item.get("revision", 0) or 0),
            )
            for item in items
        ]
