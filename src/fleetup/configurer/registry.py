# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/configurer/registry.py
from __future__ import annotations

import logging
import shlex
from typing import TYPE_CHECKING, Dict, Tuple

from fleetup.configurer.command import cmd
from fleetup.configurer.linux import Configurer
from fleetup.configurer.paths import DEFAULT_PATHS, FLATCAR_PATHS, PathProvider
from fleetup.errors import PrimitiveFailure

if TYPE_CHECKING:
    from fleetup.cluster.host import Host

log = logging.getLogger("fleetup")

# os-release ID -> path overrides; anything not listed runs with DEFAULT_PATHS
DISTRO_PATHS: Dict[str, PathProvider] = {
    "flatcar": FLATCAR_PATHS,
}


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse /etc/os-release KEY=value lines, unquoting values."""
    out: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value]
        out[key.strip()] = parts[0] if parts else ""
    return out


def configurer_for(os_id: str) -> Configurer:
    paths = DISTRO_PATHS.get(os_id, DEFAULT_PATHS)
    return Configurer(paths=paths, name=os_id or "linux")


def detect_os(h: "Host") -> Tuple[str, str]:
    """(ID, VERSION_ID) of the host, honouring the `os` override from config."""
    if h.spec.os:
        return h.spec.os, ""
    try:
        release = parse_os_release(h.exec(cmd("cat", "/etc/os-release")))
    except PrimitiveFailure as e:
        raise PrimitiveFailure(f"failed to read /etc/os-release, is this a linux host? ({e})") from e
    return release.get("ID", "linux"), release.get("VERSION_ID", "")


def resolve_configurer(h: "Host") -> Configurer:
    """Probe the OS once and bind the matching configurer to the host."""
    os_id, os_version = detect_os(h)
    h.metadata.os_id = os_id
    h.metadata.os_version = os_version
    configurer = configurer_for(os_id)
    h.bind_configurer(configurer)
    log.debug("%s: detected %s %s, using %r", h, os_id, os_version, configurer)
    return configurer
