# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/download_binaries.py
from __future__ import annotations

import logging

from fleetup.cluster.host import Host, Hosts
from fleetup.phase.base import GenericPhase
from fleetup.utils.version import same_version

log = logging.getLogger("fleetup")


class DownloadBinaries(GenericPhase):
    """Has hosts without an uploadBinaryPath fetch the k0s release themselves."""

    def __init__(self) -> None:
        super().__init__()
        self.targets = Hosts()

    def title(self) -> str:
        return "Download k0s binaries on hosts"

    def prepare(self, cluster) -> None:
        super().prepare(cluster)

        def wanted(h: Host) -> bool:
            md = h.metadata
            if md.upload_binary_path or md.reset or md.needs_upgrade:
                return False
            return not same_version(md.binary_version, self.desired_version)

        self.targets = self.hosts.filter(wanted)

    def should_run(self) -> bool:
        return len(self.targets) > 0

    def run(self) -> None:
        self.parallel_do(self.targets, self.download_binary)

    def download_binary(self, h: Host) -> None:
        c = h.configurer
        arch = h.metadata.arch or c.arch(h)
        log.info("%s: downloading k0s %s (%s)", h, self.desired_version, arch)
        c.download_binary(h, self.desired_version, arch)

        installed = c.binary_version(h)
        h.metadata.binary_version = str(installed)
        log.debug("%s: has k0s binary version %s", h, h.metadata.binary_version)
        c.verify_version(installed, self.desired_version)
