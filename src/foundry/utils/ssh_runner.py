# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/utils/ssh_runner.py

from __future__ import annotations

import logging
import os
import shlex
import socket
from pathlib import Path
from typing import Optional

import paramiko

from foundry.config.models import Host
from foundry.errors import HostUnreachableError, RemoteCommandError

log = logging.getLogger("foundry")


class SSHRunner:
    """
    Remote-execution client over a connected paramiko session.
    """

    def __init__(self, client: paramiko.SSHClient, *, hostname: str = ""):
        self.client = client
        self.hostname = hostname

    def run(
        self,
        cmd: str,
        *,
        sudo: bool = False,
        timeout: Optional[int] = None,
    ) -> tuple[int, str, str]:
        if sudo:
            cmd = f"sudo -H -E bash -c {shlex.quote(cmd)}"

        log.debug("[ssh %s] $ %s", self.hostname, cmd)
        try:
            stdin, stdout, stderr = self.client.exec_command(cmd, timeout=timeout)
            out = stdout.read().decode(errors="replace")
            err = stderr.read().decode(errors="replace")
            rc = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as exc:
            # socket.timeout is an OSError
            raise HostUnreachableError(self.hostname, f"lost session running {cmd!r}: {exc}") from exc
        return rc, out, err

    def execute(self, cmd: str, *, sudo: bool = False) -> str:
        """
        Run `cmd` and return its stdout. A non-zero exit raises
        RemoteCommandError carrying the exit code, stdout and stderr.
        """
        rc, out, err = self.run(cmd, sudo=sudo)
        if rc != 0:
            raise RemoteCommandError(cmd, rc, out, err)
        return out

    def put_text(self, content: str, remote_path: str, *, sudo: bool = False) -> None:
        if sudo:
            tmp = f"/tmp/.foundry.tmp.{os.getpid()}"
            self.put_text(content, tmp)
            self.execute(f"mv {tmp} {remote_path}", sudo=True)
            return

        try:
            sftp = self.client.open_sftp()
            try:
                with sftp.open(remote_path, "w") as f:
                    f.write(content)
            finally:
                sftp.close()
        except (paramiko.SSHException, OSError) as exc:
            raise RemoteCommandError(f"write {remote_path}", -1, "", str(exc)) from exc

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SSHRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def host_key_path(keys_dir: Path, cluster_name: str, hostname: str) -> Path:
    return keys_dir / cluster_name / hostname / "id_ed25519"


def open_ssh(
    host: Host,
    *,
    key_path: Optional[Path] = None,
    connect_timeout: float = 30.0,
) -> SSHRunner:
    """
    Connect to `host`. Any transport or auth failure surfaces as
    HostUnreachableError.
    """
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    pkey = None
    if key_path and key_path.exists():
        for key_cls in (
            paramiko.Ed25519Key,
            paramiko.RSAKey,
            paramiko.ECDSAKey,
        ):
            try:
                pkey = key_cls.from_private_key_file(str(key_path))
                break
            except paramiko.SSHException:
                continue

    try:
        client.connect(
            hostname=host.address,
            port=host.port,
            username=host.user,
            pkey=pkey,
            timeout=connect_timeout,
            allow_agent=pkey is None,
            look_for_keys=pkey is None,
        )
    except (paramiko.SSHException, socket.error) as exc:
        client.close()
        raise HostUnreachableError(host.hostname, str(exc)) from exc

    return SSHRunner(client, hostname=host.hostname)
