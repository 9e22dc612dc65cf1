# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/validate_hosts.py
from __future__ import annotations

from collections import Counter
from typing import Dict

from fleetup.cluster.host import Host
from fleetup.errors import ConfigError
from fleetup.phase.base import GenericPhase


class ValidateHosts(GenericPhase):
    """
    Checks every host before anything is changed on it.

    The checks are independent: each one runs for every host whatever the
    others reported, and all failures come back in a single HostErrors.
    """

    def __init__(self) -> None:
        super().__init__()
        self.hncount: Dict[str, int] = {}

    def title(self) -> str:
        return "Validate hosts"

    def run(self) -> None:
        self.hncount = Counter(h.metadata.hostname for h in self.hosts)
        self.parallel_do(
            self.hosts,
            self.validate_unique_hostname,
            self.validate_sudo,
            independent=True,
        )

    def validate_unique_hostname(self, h: Host) -> None:
        if self.hncount.get(h.metadata.hostname, 0) > 1:
            raise ConfigError(f"hostname is not unique: {h.metadata.hostname}")

    def validate_sudo(self, h: Host) -> None:
        h.configurer.check_privilege(h)
