# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/upload_binaries.py
from __future__ import annotations

import logging
import os
import posixpath

from fleetup.cluster.host import Host, Hosts
from fleetup.errors import PrimitiveFailure
from fleetup.phase.base import GenericPhase
from fleetup.utils.version import same_version

log = logging.getLogger("fleetup")


class UploadBinaries(GenericPhase):
    """Uploads k0s binaries from localhost to the hosts."""

    def __init__(self) -> None:
        super().__init__()
        self.targets = Hosts()

    def title(self) -> str:
        return "Upload k0s binaries to hosts"

    def prepare(self, cluster) -> None:
        super().prepare(cluster)

        def wanted(h: Host) -> bool:
            md = h.metadata
            # nothing to upload
            if not md.upload_binary_path or md.reset:
                return False
            # upgrades stop k0s, swap the binary and restart it elsewhere
            if md.needs_upgrade:
                return False
            # already at the desired version
            return not same_version(md.binary_version, self.desired_version)

        self.targets = self.hosts.filter(wanted)

    def should_run(self) -> bool:
        return len(self.targets) > 0

    def run(self) -> None:
        self.parallel_do_upload(self.targets, self.upload_binary)

    def ensure_bin_path(self, h: Host) -> None:
        c = h.configurer
        d = posixpath.dirname(c.binary_path())
        # test -e works for directories too
        if c.file_exist(h, d):
            return
        try:
            c.mkdir(h, d)
            c.chmod(h, d, "0755")
        except PrimitiveFailure as e:
            raise PrimitiveFailure(f"failed to create {d}: {e}") from e

    def upload_binary(self, h: Host) -> None:
        c = h.configurer
        src = h.metadata.upload_binary_path
        dst = c.binary_path()
        try:
            st = os.stat(src)
        except OSError as e:
            raise PrimitiveFailure(f"failed to stat {src}: {e}") from e

        if c.file_changed(h, src, dst):
            self.ensure_bin_path(h)
            log.info("%s: uploading k0s binary from %s", h, src)
            h.upload(src, dst, sudo=True)
        else:
            log.info("%s: k0s binary %s already exists on the target and hasn't been changed, skipping upload", h, src)

        c.chmod(h, dst, "0700")

        log.debug("%s: touching %s", h, dst)
        try:
            c.touch(h, dst, st.st_mtime)
        except PrimitiveFailure as e:
            raise PrimitiveFailure(f"failed to touch {dst}: {e}") from e

        try:
            uploaded = c.binary_version(h)
        except PrimitiveFailure as e:
            raise PrimitiveFailure(f"failed to get uploaded k0s binary version: {e}") from e

        h.metadata.binary_version = str(uploaded)
        log.debug("%s: has k0s binary version %s", h, h.metadata.binary_version)

        c.verify_version(uploaded, self.desired_version)
