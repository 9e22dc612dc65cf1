# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/detect_os.py
from __future__ import annotations

import logging

from fleetup.cluster.host import Host, Hosts
from fleetup.configurer.registry import resolve_configurer
from fleetup.phase.base import GenericPhase

log = logging.getLogger("fleetup")


class DetectOS(GenericPhase):
    """Probes each host's OS once and binds its configurer."""

    def __init__(self) -> None:
        super().__init__()
        self.pending = Hosts()

    def title(self) -> str:
        return "Detect host operating systems"

    def prepare(self, cluster) -> None:
        super().prepare(cluster)
        self.pending = self.hosts.filter(lambda h: not h.has_configurer)

    def should_run(self) -> bool:
        return len(self.pending) > 0

    def run(self) -> None:
        self.parallel_do(self.pending, self._detect)

    def _detect(self, h: Host) -> None:
        resolve_configurer(h)
        log.info("%s: is running %s %s", h, h.metadata.os_id, h.metadata.os_version)
