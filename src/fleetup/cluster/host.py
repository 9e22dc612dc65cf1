# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/cluster/host.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol

from fleetup.cluster.metadata import HostMetadata
from fleetup.config.models import ClusterConfig, HostSpec
from fleetup.configurer.command import Command
from fleetup.errors import ConfigError, PrimitiveFailure
from fleetup.utils.execution import ExecutionContext

if TYPE_CHECKING:
    from fleetup.configurer.linux import Configurer

log = logging.getLogger("fleetup")


class Connection(Protocol):
    def exec(self, command: Command, *, timeout: Optional[float] = None) -> str: ...

    def upload(self, local_path: str, remote_path: str, *, sudo: bool = False) -> None: ...

    def close(self) -> None: ...


class Host:
    """
    One deployment target: desired spec, live connection, bound configurer
    and observed metadata.
    """

    def __init__(self, spec: HostSpec, ctx: Optional[ExecutionContext] = None):
        self.spec = spec
        self.ctx = ctx or ExecutionContext()
        self.connection: Optional[Connection] = None
        self._configurer: Optional["Configurer"] = None
        self.metadata = HostMetadata(
            hostname=spec.hostname or "",
            reset=spec.reset,
            upload_binary_path=str(spec.upload_binary_path) if spec.upload_binary_path else "",
            private_interface=spec.private_interface or "",
            private_address=spec.private_address or "",
        )

    def __str__(self) -> str:
        return f"[ssh] {self.spec.ssh.address}:{self.spec.ssh.port}"

    __repr__ = __str__

    # ------------------ identity ------------------

    @property
    def address(self) -> str:
        return self.spec.ssh.address

    @property
    def role(self) -> str:
        return self.spec.role

    @property
    def is_controller(self) -> bool:
        return self.role in ("controller", "controller+worker", "single")

    @property
    def service_name(self) -> str:
        return "k0scontroller" if self.is_controller else "k0sworker"

    @property
    def is_root(self) -> bool:
        return self.spec.ssh.user == "root"

    # ------------------ configurer ------------------

    @property
    def configurer(self) -> "Configurer":
        if self._configurer is None:
            raise ConfigError(f"{self}: OS not detected yet, no configurer bound")
        return self._configurer

    @property
    def has_configurer(self) -> bool:
        return self._configurer is not None

    def bind_configurer(self, configurer: "Configurer") -> None:
        if self._configurer is not None and self._configurer is not configurer:
            raise ConfigError(f"{self}: configurer already bound")
        self._configurer = configurer

    # ------------------ execution ------------------

    def exec(self, command: Command, *, timeout: Optional[float] = None, check_cancel: bool = True) -> str:
        """
        Run a command and return its trimmed stdout. Raises PrimitiveFailure
        when the command fails and Cancelled once the run has been cancelled.

        Cleanup commands pass check_cancel=False so they still run after a cancel.
        """
        if check_cancel:
            self.ctx.check()
        if self.connection is None:
            raise PrimitiveFailure(f"{self}: not connected")
        if command.sudo and self.is_root:
            command = command.without_sudo()
        log.debug("%s: executing `%s`", self, command)
        return self.connection.exec(command, timeout=timeout).strip()

    def succeeds(self, command: Command) -> bool:
        """True when the command exits 0. Cancellation still raises."""
        try:
            self.exec(command)
        except PrimitiveFailure:
            return False
        return True

    def upload(self, local_path: str, remote_path: str, *, sudo: bool = False) -> None:
        self.ctx.check()
        if self.connection is None:
            raise PrimitiveFailure(f"{self}: not connected")
        self.connection.upload(local_path, remote_path, sudo=sudo and not self.is_root)

    def disconnect(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None


class Hosts(List[Host]):
    def filter(self, predicate: Callable[[Host], bool]) -> "Hosts":
        return Hosts(h for h in self if predicate(h))

    def controllers(self) -> "Hosts":
        return self.filter(lambda h: h.is_controller)


@dataclass
class Cluster:
    """Runtime view of a loaded config: the immutable desired state plus live hosts."""

    config: ClusterConfig
    hosts: Hosts
    ctx: ExecutionContext = field(default_factory=ExecutionContext)

    @classmethod
    def from_config(cls, cfg: ClusterConfig, ctx: Optional[ExecutionContext] = None) -> "Cluster":
        ctx = ctx or ExecutionContext()
        return cls(config=cfg, hosts=Hosts(Host(spec, ctx) for spec in cfg.spec.hosts), ctx=ctx)

    @property
    def name(self) -> str:
        return self.config.metadata.name

    @property
    def desired_version(self) -> str:
        return self.config.spec.k0s.version
