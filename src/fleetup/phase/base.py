# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from fleetup.cluster.host import Cluster, Hosts
from fleetup.errors import ConfigError
from fleetup.phase.dispatch import HostFunc, parallel_do


class Phase(ABC):
    """
    One step of the pipeline.

    - title():      label shown when the phase runs, no side effects
    - prepare():    bind to the cluster and pick the hosts the phase applies to,
                    no remote I/O
    - should_run(): pure function of what prepare() picked
    - run():        do the remote work; running it again on unchanged hosts
                    must be a no-op
    - cleanup():    optional, called in reverse order when a later phase fails
    """

    @abstractmethod
    def title(self) -> str: ...

    def prepare(self, cluster: Cluster) -> None:
        return None

    def should_run(self) -> bool:
        return True

    @abstractmethod
    def run(self) -> None: ...

    def cleanup(self) -> None:
        return None


class GenericPhase(Phase):
    """Phase with the cluster bound and helpers for dispatching to hosts."""

    def __init__(self) -> None:
        self.cluster: Optional[Cluster] = None

    def prepare(self, cluster: Cluster) -> None:
        self.cluster = cluster

    def _bound(self) -> Cluster:
        if self.cluster is None:
            raise ConfigError(f"phase '{self.title()}' used before prepare()")
        return self.cluster

    @property
    def hosts(self) -> Hosts:
        return self._bound().hosts

    @property
    def desired_version(self) -> str:
        return self._bound().desired_version

    def parallel_do(self, hosts: Hosts, *funcs: HostFunc, independent: bool = False) -> None:
        cluster = self._bound()
        limit = cluster.config.spec.options.concurrency.limit
        parallel_do(hosts, *funcs, concurrency=limit, independent=independent, ctx=cluster.ctx)

    def parallel_do_upload(self, hosts: Hosts, *funcs: HostFunc) -> None:
        cluster = self._bound()
        limit = cluster.config.spec.options.concurrency.uploads
        parallel_do(hosts, *funcs, concurrency=limit, ctx=cluster.ctx)
