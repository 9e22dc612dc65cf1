# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/configurer/paths.py
from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class PathProvider:
    """
    Where k0s lives on a host. Distro support is a different PathProvider
    handed to the shared Configurer, not a subclass.
    """

    binary_path: str = "/usr/local/bin/k0s"
    config_path: str = "/etc/k0s/k0s.yaml"
    join_token_path: str = "/etc/k0s/k0stoken"
    data_dir: str = "/var/lib/k0s"
    admin_kubeconfig_path: str = "/var/lib/k0s/pki/admin.conf"
    kubelet_kubeconfig_path: str = "/var/lib/k0s/kubelet.conf"


DEFAULT_PATHS = PathProvider()

# /usr is read-only on Flatcar
FLATCAR_PATHS = replace(DEFAULT_PATHS, binary_path="/opt/bin/k0s")
