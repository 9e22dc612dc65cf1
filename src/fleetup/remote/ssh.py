# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/remote/ssh.py

from __future__ import annotations

import logging
import posixpath
import uuid
from pathlib import Path
from typing import Optional

import paramiko

from fleetup.config.models import SSHSpec
from fleetup.configurer.command import Command, cmd
from fleetup.errors import PrimitiveFailure

log = logging.getLogger("fleetup")


class SSHConnection:
    """Blocking command execution and file transfer over one paramiko client."""

    def __init__(self, client: paramiko.SSHClient, *, cmd_timeout: Optional[float] = 600.0):
        self.client = client
        self.cmd_timeout = cmd_timeout

    @classmethod
    def connect(cls, spec: SSHSpec, *, connect_timeout: float = 20.0) -> "SSHConnection":
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        pkey = None
        if spec.key_path:
            key_path = str(Path(spec.key_path).expanduser())
            for key_cls in (
                paramiko.Ed25519Key,
                paramiko.RSAKey,
                paramiko.ECDSAKey,
            ):
                try:
                    pkey = key_cls.from_private_key_file(key_path)
                    break
                except paramiko.SSHException:
                    continue
            if pkey is None:
                raise PrimitiveFailure(f"unsupported private key format for {key_path}")

        try:
            client.connect(
                hostname=spec.address,
                port=spec.port,
                username=spec.user,
                password=spec.password if not pkey else None,
                pkey=pkey,
                timeout=connect_timeout,
                allow_agent=True,
                look_for_keys=pkey is None,
            )
        except (paramiko.SSHException, OSError) as e:
            raise PrimitiveFailure(
                f"failed to connect to {spec.address}:{spec.port} as '{spec.user}': {e}"
            ) from e

        return cls(client)

    def exec(self, command: Command, *, timeout: Optional[float] = None) -> str:
        line = command.render()
        try:
            stdin, stdout, stderr = self.client.exec_command(line, timeout=timeout or self.cmd_timeout)
            if command.stdin is not None:
                stdin.write(command.stdin)
            stdin.channel.shutdown_write()
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            rc = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            # OSError covers socket.timeout from the channel reads
            raise PrimitiveFailure(f"command failed: {e}", command=line) from e
        if rc != 0:
            raise PrimitiveFailure(
                f"command failed (rc={rc}): {err.strip() or out.strip()}",
                command=line,
                output=out,
            )
        return out

    def upload(self, local_path: str, remote_path: str, *, sudo: bool = False) -> None:
        """
        Transfer a local file. With sudo the file lands in /tmp first and is
        moved into place as root; the staging file is removed either way.
        """
        if not sudo:
            self._put(local_path, remote_path)
            return

        tmp = posixpath.join("/tmp", f".fleetup.upload.{uuid.uuid4().hex}")
        try:
            self._put(local_path, tmp)
            self.exec(cmd("mv", "-f", tmp, remote_path, sudo=True))
        finally:
            try:
                self.exec(cmd("rm", "-f", tmp, sudo=True))
            except PrimitiveFailure as e:
                log.debug("failed to remove staging file %s: %s", tmp, e)

    def _put(self, local_path: str, remote_path: str) -> None:
        sftp = self.client.open_sftp()
        try:
            sftp.put(str(local_path), str(remote_path))
        except (IOError, paramiko.SSHException) as e:
            raise PrimitiveFailure(f"failed to upload {local_path} to {remote_path}: {e}") from e
        finally:
            sftp.close()

    def close(self) -> None:
        self.client.close()
