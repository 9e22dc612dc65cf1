# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single apply invocation
    cluster: str      # metadata.name of the cluster config

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(cluster: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": now(),
        "run_id": run_id or str(uuid.uuid4()),
        "cluster": cluster,
    }


# ---------------------------------------------------------------------
# Phase lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PhaseStarted(BaseEvent):
    title: str

@dataclass(frozen=True)
class PhaseSkipped(BaseEvent):
    title: str

@dataclass(frozen=True)
class PhaseSucceeded(BaseEvent):
    title: str
    duration_ms: int

@dataclass(frozen=True)
class PhaseFailed(BaseEvent):
    title: str
    error: str
    failed_hosts: List[str]

@dataclass(frozen=True)
class CleanupFailed(BaseEvent):
    title: str
    error: str


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PipelineSummary(BaseEvent):
    status: str       # "OK" | "FAILED" | "CANCELLED"
    phases_run: int
    phases_skipped: int
    error: Optional[str] = None
