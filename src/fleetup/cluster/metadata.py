# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/cluster/metadata.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass
class HostMetadata:
    """
    Observed state of one host. Only the task running for this host writes it.
    """
    hostname: str = ""
    arch: str = ""
    binary_version: str = ""          # as reported by `k0s version`, "" when not installed
    needs_upgrade: bool = False
    reset: bool = False
    upload_binary_path: str = ""      # local artifact to push, "" to download on the host
    os_id: str = ""
    os_version: str = ""
    private_interface: str = ""
    private_address: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
