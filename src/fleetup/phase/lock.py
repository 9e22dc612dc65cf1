# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/lock.py
from __future__ import annotations

import logging
import os
import socket
import threading
from typing import Dict

from fleetup.cluster.host import Host
from fleetup.errors import PrimitiveFailure, UpsertConflict
from fleetup.phase.base import GenericPhase

log = logging.getLogger("fleetup")


class Lock(GenericPhase):
    """
    Creates a lock file on every host so two runs can not act on the same
    host at once. The lock is created with an atomic upsert; finding the
    file already there means another run holds it.
    """

    def __init__(self) -> None:
        super().__init__()
        self.acquired: Dict[Host, str] = {}
        self._mu = threading.Lock()

    def title(self) -> str:
        return "Acquire exclusive host lock"

    def token(self) -> str:
        run_id = self.cluster.ctx.run_id if self.cluster else ""
        parts = (run_id, socket.gethostname(), str(os.getpid()))
        return " ".join(p for p in parts if p)

    def run(self) -> None:
        self.parallel_do(self.hosts, self._lock)

    def _lock(self, h: Host) -> None:
        path = h.configurer.lock_file_path(h)
        token = self.token()
        try:
            h.configurer.upsert_file(h, path, token + "\n")
        except UpsertConflict:
            holder = self._holder(h, path)
            if holder.strip() != token.strip():
                log.error("%s: %s is held by %r", h, path, holder)
                raise
            log.debug("%s: already holding %s", h, path)
        with self._mu:
            self.acquired[h] = path
        log.debug("%s: acquired %s", h, path)

    @staticmethod
    def _holder(h: Host, path: str) -> str:
        try:
            return h.configurer.read_file(h, path).strip()
        except PrimitiveFailure as e:
            log.debug("%s: can not read %s: %s", h, path, e)
            return ""

    def release(self) -> None:
        with self._mu:
            held = dict(self.acquired)
            self.acquired.clear()
        for h, path in held.items():
            h.configurer.remove_quietly(h, path)
            log.debug("%s: released %s", h, path)

    def cleanup(self) -> None:
        self.release()


class Unlock(GenericPhase):
    """Removes the lock files created by a Lock phase earlier in the run."""

    def __init__(self, lock: Lock):
        super().__init__()
        self.lock = lock

    def title(self) -> str:
        return "Release exclusive host lock"

    def should_run(self) -> bool:
        return len(self.lock.acquired) > 0

    def run(self) -> None:
        self.lock.release()
