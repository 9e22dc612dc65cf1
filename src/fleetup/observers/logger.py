# src/fleetup/observers/logger.py
from __future__ import annotations

import logging

from .events import BaseEvent, CleanupFailed, PhaseFailed

_CONTEXT = ("ts", "run_id", "cluster", "title")


class LoggerObserver:
    """
    Mirrors events into the run log. Everything goes out at DEBUG except
    failures, which also name the phase and the hosts that failed at WARNING
    so they stand out in the trace file.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        phase = d.get("title")
        fields = []
        for k, v in d.items():
            if k in _CONTEXT or v in (None, [], ""):
                continue
            if isinstance(v, list):
                v = ",".join(str(x) for x in v)
            fields.append(f"{k}={v}")
        msg = " ".join(fields)
        level = logging.WARNING if isinstance(event, (PhaseFailed, CleanupFailed)) else logging.DEBUG

        if phase:
            self.logger.log(level, "[EVENT] %s phase=%r run=%s %s", etype, phase, event.run_id, msg)
        else:
            self.logger.log(level, "[EVENT] %s run=%s %s", etype, event.run_id, msg)
