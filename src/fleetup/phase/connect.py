# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/connect.py
from __future__ import annotations

import logging
from typing import Callable

from fleetup.cluster.host import Connection, Host, Hosts
from fleetup.config.models import SSHSpec
from fleetup.phase.base import GenericPhase
from fleetup.remote.ssh import SSHConnection

log = logging.getLogger("fleetup")

ConnectionFactory = Callable[[SSHSpec], Connection]


class Connect(GenericPhase):
    """Opens a connection to every host that does not have one yet."""

    def __init__(self, factory: ConnectionFactory = SSHConnection.connect):
        super().__init__()
        self.factory = factory
        self.pending = Hosts()

    def title(self) -> str:
        return "Connect to hosts"

    def prepare(self, cluster) -> None:
        super().prepare(cluster)
        self.pending = self.hosts.filter(lambda h: h.connection is None)

    def should_run(self) -> bool:
        return len(self.pending) > 0

    def run(self) -> None:
        self.parallel_do(self.pending, self._connect)

    def _connect(self, h: Host) -> None:
        h.connection = self.factory(h.spec.ssh)
        log.info("%s: connected", h)
