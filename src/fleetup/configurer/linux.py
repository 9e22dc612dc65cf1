# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/configurer/linux.py
from __future__ import annotations

import logging
import os
import posixpath
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Tuple

from fleetup.configurer.command import cmd, sbin
from fleetup.configurer.paths import DEFAULT_PATHS, PathProvider
from fleetup.errors import PrimitiveFailure, UpsertConflict, VersionMismatch
from fleetup.utils.version import BinaryVersion

if TYPE_CHECKING:
    from fleetup.cluster.host import Host

log = logging.getLogger("fleetup")

DOWNLOAD_URL = "https://github.com/k0sproject/k0s/releases/download/{version}/k0s-{version}-{arch}"

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "aarch64": "arm64",
    "armv7l": "arm",
    "armv8l": "arm",
    "aarch32": "arm",
    "arm32": "arm",
    "armhfp": "arm",
    "arm-32": "arm",
}

_PRIVATE_ROUTE = re.compile(r"\b(172|10|192\.168)\.")
_DEV = re.compile(r"\bdev (\S+)")


def normalize_arch(raw: str) -> str:
    """Map `uname -m` output to the architecture names k0s releases use."""
    raw = raw.strip()
    return _ARCH_ALIASES.get(raw, raw)


def select_private_interface(global_routes: str, all_routes: str) -> Optional[str]:
    """
    Pick the interface of the first route into a private range, else the
    interface of the default route.
    """
    for line in global_routes.splitlines():
        if _PRIVATE_ROUTE.search(line):
            m = _DEV.search(line)
            if m:
                return m.group(1)
    for line in all_routes.splitlines():
        if line.startswith("default"):
            m = _DEV.search(line)
            if m:
                return m.group(1)
    return None


def select_private_address(output: str, public_ip: str) -> str:
    """
    Pick the first IPv4 address from `ip -o addr show` output that is not the
    public address. Lines with fewer than four fields are ignored.
    """
    for line in output.splitlines():
        items = line.split()
        if len(items) < 4:
            continue
        # a /32 is printed without the CIDR suffix
        addr = items[3].split("/", 1)[0]
        if len(addr.split(".")) != 4:
            continue
        if addr != public_ip:
            return addr
    raise PrimitiveFailure("not found")


class Configurer:
    """
    The capability set of a Linux host.

    Every distro shares this logic; what differs between them is injected as
    a PathProvider when the configurer is resolved for a host.
    """

    def __init__(self, paths: PathProvider = DEFAULT_PATHS, name: str = "linux"):
        self.paths = paths
        self.name = name

    def __repr__(self) -> str:
        return f"Configurer({self.name})"

    # ------------------ paths ------------------

    def binary_path(self) -> str:
        return self.paths.binary_path

    def config_path(self) -> str:
        return self.paths.config_path

    def join_token_path(self) -> str:
        return self.paths.join_token_path

    def kubeconfig_path(self, h: "Host") -> str:
        if self.file_exist(h, self.paths.admin_kubeconfig_path):
            return self.paths.admin_kubeconfig_path
        return self.paths.kubelet_kubeconfig_path

    def kubectl_command(self, h: "Host", *args: str):
        return cmd(
            self.binary_path(), "kubectl", *args,
            sudo=True, env={"KUBECONFIG": self.kubeconfig_path(h)},
        )

    def lock_file_path(self, h: "Host") -> str:
        if h.succeeds(cmd("test", "-d", "/run/lock", sudo=True)):
            return "/run/lock/fleetup"
        return "/tmp/fleetup.lock"

    # ------------------ facts ------------------

    def arch(self, h: "Host") -> str:
        return normalize_arch(h.exec(cmd("uname", "-m")))

    def hostname(self, h: "Host") -> str:
        return h.exec(cmd("hostname"))

    def check_privilege(self, h: "Host") -> None:
        if h.is_root:
            return
        try:
            h.exec(cmd("true", sudo=True))
        except PrimitiveFailure as e:
            raise PrimitiveFailure(
                f"user {h.spec.ssh.user} can not run commands with sudo without a password: {e}"
            ) from e

    def service_running(self, h: "Host", service: str) -> bool:
        return h.succeeds(cmd("systemctl", "is-active", "--quiet", service, sudo=True))

    def binary_version(self, h: "Host") -> BinaryVersion:
        output = h.exec(cmd(self.binary_path(), "version", sudo=True))
        try:
            return BinaryVersion.parse(output)
        except ValueError as e:
            raise PrimitiveFailure(f"unparsable k0s version output: {output!r}", output=output) from e

    @staticmethod
    def verify_version(observed: BinaryVersion, desired: str) -> None:
        try:
            wanted = BinaryVersion.parse(desired)
        except ValueError:
            if observed.raw != desired:
                raise VersionMismatch(observed, desired)
            return
        if observed != wanted:
            raise VersionMismatch(observed, wanted)

    def http_status(self, h: "Host", url: str) -> int:
        output = h.exec(cmd("curl", "-kso", "/dev/null", "-w", "%{http_code}", url))
        try:
            return int(output)
        except ValueError as e:
            raise PrimitiveFailure(f"invalid response: {output!r}", output=output) from e

    # ------------------ network ------------------

    def private_interface(self, h: "Host") -> str:
        try:
            iface = select_private_interface(
                h.exec(sbin("ip", "route", "list", "scope", "global")),
                h.exec(sbin("ip", "route", "list")),
            )
            if iface is None:
                raise PrimitiveFailure("can't find 'dev' in output")
        except PrimitiveFailure as e:
            raise PrimitiveFailure(
                f"failed to detect a private network interface, define the host privateInterface manually ({e})"
            ) from e
        return iface

    def private_address(self, h: "Host", iface: str, public_ip: str) -> str:
        try:
            output = h.exec(sbin("ip", "-o", "addr", "show", "dev", iface, "scope", "global"))
        except PrimitiveFailure as e:
            raise PrimitiveFailure(
                f"failed to find private interface with name {iface}: {e}. "
                "Make sure you've set correct 'privateInterface' for the host in config"
            ) from e
        return select_private_address(output, public_ip)

    # ------------------ files ------------------

    def file_exist(self, h: "Host", path: str) -> bool:
        return h.succeeds(cmd("test", "-e", path, sudo=True))

    def read_file(self, h: "Host", path: str) -> str:
        return h.exec(cmd("cat", path, sudo=True))

    def temp_file(self, h: "Host") -> str:
        return h.exec(cmd("mktemp"))

    def temp_dir(self, h: "Host") -> str:
        return h.exec(cmd("mktemp", "-d"))

    def mkdir(self, h: "Host", path: str) -> None:
        h.exec(cmd("mkdir", "-p", path, sudo=True))

    def chmod(self, h: "Host", path: str, mode: str) -> None:
        h.exec(cmd("chmod", mode, path, sudo=True))

    def touch(self, h: "Host", path: str, mtime: float) -> None:
        stamp = datetime.fromtimestamp(int(mtime), tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        h.exec(cmd("touch", "-m", "-d", stamp, path, sudo=True, env={"TZ": "UTC"}))

    def file_contains(self, h: "Host", path: str, s: str) -> bool:
        return h.succeeds(cmd("grep", "-q", "--", s, path, sudo=True))

    def move_file(self, h: "Host", src: str, dst: str) -> None:
        h.exec(cmd("mv", src, dst, sudo=True))

    def delete_dir(self, h: "Host", path: str, *, sudo: bool = False) -> None:
        """Remove an empty directory; fails if anything is left in it."""
        h.exec(cmd("rmdir", path, sudo=sudo))

    def replace_join_token_path(self, h: "Host", service_path: str) -> None:
        """Point the REPLACEME placeholder in a service stub at the join token file."""
        h.exec(cmd("sed", "-i", f"s^REPLACEME^{self.join_token_path()}^g", service_path, sudo=True))

    def remove(self, h: "Host", path: str) -> None:
        # releases must go out even after the run was cancelled
        h.exec(cmd("rm", "-f", path, sudo=True), check_cancel=False)

    def remove_quietly(self, h: "Host", path: str) -> None:
        """Best effort cleanup. Failures are logged, never raised."""
        try:
            self.remove(h, path)
        except Exception as e:  # cleanup must not mask the primary result
            log.debug("%s: failed to remove %s: %s", h, path, e)

    def remote_stat(self, h: "Host", path: str) -> Optional[Tuple[int, int]]:
        """(size, mtime seconds) of a remote file, None when it does not exist."""
        try:
            output = h.exec(cmd("stat", "-c", "%s %Y", path, sudo=True))
        except PrimitiveFailure:
            return None
        try:
            size, mtime = output.split()
            return int(size), int(mtime)
        except ValueError as e:
            raise PrimitiveFailure(f"unparsable stat output for {path}: {output!r}", output=output) from e

    def file_changed(self, h: "Host", local_path: str, remote_path: str) -> bool:
        """
        True when the remote file is missing or differs from the local one in
        size or whole-second mtime.
        """
        st = os.stat(local_path)
        remote = self.remote_stat(h, remote_path)
        if remote is None:
            return True
        size, mtime = remote
        return size != st.st_size or mtime != int(st.st_mtime)

    def upsert_file(self, h: "Host", path: str, content: str) -> None:
        """
        Create `path` with `content` only if it does not exist yet. Raises
        UpsertConflict when another writer got there first.
        """
        tmpf = self.temp_file(h)
        try:
            h.exec(cmd("cat", sudo=True, stdin=content, redirect_to=tmpf))
            # mv -n is atomic and never replaces an existing destination.
            # Newer coreutils exit non-zero when they skip, older ones exit 0.
            mv_err = None
            try:
                h.exec(cmd("mv", "-n", tmpf, path, sudo=True))
            except PrimitiveFailure as e:
                mv_err = e
            if mv_err is not None:
                # a failed mv is a lost race only when the destination is there
                if self.file_exist(h, path):
                    raise UpsertConflict(path) from mv_err
                raise PrimitiveFailure(f"upsert of {path} failed: {mv_err}") from mv_err
            # the rename consumed the temp file unless the destination existed
            if h.succeeds(cmd("test", "-f", tmpf, sudo=True)):
                raise UpsertConflict(path)
        finally:
            self.remove_quietly(h, tmpf)

    # ------------------ install ------------------

    def download_url(self, h: "Host", url: str, destination: str) -> None:
        h.exec(cmd("curl", "-sSLf", "-o", destination, url))

    def install_binary(self, h: "Host", url: str) -> None:
        """
        Download `url` to a temp file and install it as the k0s binary with
        root ownership. The temp file is removed whatever happens.
        """
        tmp = self.temp_file(h)
        try:
            self.download_url(h, url, tmp)
            h.exec(cmd(
                "install", "-m", "0755", "-o", "root", "-g", "root",
                "-d", posixpath.dirname(self.binary_path()), sudo=True,
            ))
            h.exec(cmd(
                "install", "-m", "0750", "-o", "root", "-g", "root",
                tmp, self.binary_path(), sudo=True,
            ))
        finally:
            self.remove_quietly(h, tmp)

    def download_binary(self, h: "Host", version: str, arch: str) -> None:
        self.install_binary(h, DOWNLOAD_URL.format(version=version, arch=arch))

