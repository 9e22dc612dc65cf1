# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/manager.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from fleetup.cluster.host import Cluster
from fleetup.errors import Cancelled, HostErrors, PhaseError
from fleetup.observers.dispatcher import EventBus
from fleetup.observers.interface import Observer
from fleetup.observers.events import (
    CleanupFailed,
    PhaseFailed,
    PhaseSkipped,
    PhaseStarted,
    PhaseSucceeded,
    PipelineSummary,
    new_ctx,
    now,
)
from fleetup.phase.base import Phase

log = logging.getLogger("fleetup")


@dataclass
class RunReport:
    ran: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Optional[str] = None
    error: Optional[str] = None

    def summary(self) -> str:
        status = "FAILED" if self.failed else "OK"
        return f"{status} ran={len(self.ran)} skipped={len(self.skipped)}"


class Manager:
    """
    Runs phases in order: prepare, should_run, run. The first phase that
    fails stops the pipeline; phases after it never run.
    """

    def __init__(self, cluster: Cluster, observers: Optional[List[Observer]] = None):
        self.cluster = cluster
        self.phases: List[Phase] = []
        self.bus = EventBus(observers)
        self.run_ctx = new_ctx(cluster=cluster.name, run_id=cluster.ctx.run_id or None)

    def add(self, *phases: Phase) -> "Manager":
        self.phases.extend(phases)
        return self

    def cancel(self) -> None:
        """Ask in-flight host tasks to stop before their next remote command."""
        log.warning("cancelling, waiting for running commands to finish")
        self.cluster.ctx.cancel()

    def _event(self, cls, **kw):
        self.bus.emit(cls(**{**self.run_ctx, "ts": now(), **kw}))

    def _cleanup(self, done: List[Phase]) -> None:
        for phase in reversed(done):
            try:
                phase.cleanup()
            except Exception as e:  # the primary error is what the caller gets
                log.warning("cleanup of '%s' failed: %s", phase.title(), e)
                self._event(CleanupFailed, title=phase.title(), error=str(e))

    def run(self) -> RunReport:
        report = RunReport()
        done: List[Phase] = []

        for phase in self.phases:
            title = phase.title()
            try:
                self.cluster.ctx.check()
                phase.prepare(self.cluster)
                if not phase.should_run():
                    log.debug("==> skipping phase: %s", title)
                    report.skipped.append(title)
                    self._event(PhaseSkipped, title=title)
                    continue

                log.info("==> Running phase: %s", title)
                self._event(PhaseStarted, title=title)
                t0 = time.time()
                done.append(phase)
                phase.run()
                report.ran.append(title)
                self._event(PhaseSucceeded, title=title, duration_ms=int((time.time() - t0) * 1000))
            except Exception as e:
                report.failed = title
                report.error = str(e)
                failed_hosts = [str(h) for h in e.hosts()] if isinstance(e, HostErrors) else []
                log.error("phase '%s' failed: %s", title, e)
                self._event(PhaseFailed, title=title, error=str(e), failed_hosts=failed_hosts)
                self._cleanup(done)
                status = "CANCELLED" if self.cluster.ctx.cancelled else "FAILED"
                self._event(
                    PipelineSummary,
                    status=status,
                    phases_run=len(report.ran),
                    phases_skipped=len(report.skipped),
                    error=str(e),
                )
                if isinstance(e, Cancelled):
                    raise
                raise PhaseError(title, e) from e

        self._event(
            PipelineSummary,
            status="OK",
            phases_run=len(report.ran),
            phases_skipped=len(report.skipped),
        )
        return report
