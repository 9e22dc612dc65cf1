# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/gather_facts.py
from __future__ import annotations

import logging

from fleetup.cluster.host import Host
from fleetup.errors import PrimitiveFailure
from fleetup.phase.base import GenericPhase
from fleetup.utils.version import same_version

log = logging.getLogger("fleetup")


class GatherFacts(GenericPhase):
    """Fills host metadata: hostname, arch, installed k0s version, private address."""

    def title(self) -> str:
        return "Gather host facts"

    def run(self) -> None:
        self.parallel_do(self.hosts, self._gather)

    def _gather(self, h: Host) -> None:
        c = h.configurer
        md = h.metadata

        if not md.hostname:
            md.hostname = c.hostname(h)
        md.arch = c.arch(h)
        log.info("%s: hostname %s, architecture %s", h, md.hostname, md.arch)

        if c.file_exist(h, c.binary_path()):
            md.binary_version = str(c.binary_version(h))
            md.needs_upgrade = (
                not md.reset
                and not same_version(md.binary_version, self.desired_version)
                and c.service_running(h, h.service_name)
            )
            log.info("%s: has k0s binary version %s", h, md.binary_version)
        else:
            md.binary_version = ""
            md.needs_upgrade = False

        if not md.private_interface:
            try:
                md.private_interface = c.private_interface(h)
            except PrimitiveFailure as e:
                log.warning("%s: %s", h, e)
        if md.private_interface and not md.private_address:
            try:
                md.private_address = c.private_address(h, md.private_interface, h.address)
            except PrimitiveFailure as e:
                log.warning("%s: failed to find a private address on %s: %s", h, md.private_interface, e)
        if md.private_address:
            log.debug("%s: private address %s on %s", h, md.private_address, md.private_interface)
