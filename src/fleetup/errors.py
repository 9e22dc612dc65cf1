# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/errors.py
from __future__ import annotations

from typing import Any, List, Optional, Tuple


class FleetupError(RuntimeError):
    """Base class for fleetup failures."""


class ConfigError(FleetupError):
    """Raised for invalid desired state: bad references, duplicate hostnames, schema errors."""


class PrimitiveFailure(FleetupError):
    """
    A remote primitive failed: the underlying command exited non-zero or
    produced output that could not be parsed.
    """

    def __init__(self, message: str, *, command: Optional[str] = None, output: str = ""):
        super().__init__(message)
        self.command = command
        self.output = output


class VersionMismatch(FleetupError):
    """Observed post-action version disagrees with the desired version."""

    def __init__(self, observed: Any, desired: Any, what: str = "k0s binary"):
        super().__init__(f"{what} version is {observed} not {desired}")
        self.observed = observed
        self.desired = desired


class UpsertConflict(FleetupError):
    """Create-if-absent lost the race: the destination already existed."""

    def __init__(self, path: str):
        super().__init__(f"upsert failed: {path} already exists")
        self.path = path


class Cancelled(FleetupError):
    """The run was cancelled before the next remote command."""


class HostErrors(FleetupError):
    """
    Aggregate of per-host failures from one parallel dispatch.

    `errors` keeps every (host, exception) pair in host order; a host may
    appear more than once when its functions ran independently.
    """

    def __init__(self, errors: List[Tuple[Any, BaseException]]):
        self.errors = list(errors)
        lines = [f"{host}: {err}" for host, err in self.errors]
        super().__init__(
            f"{len(self.errors)} host error(s):\n  " + "\n  ".join(lines)
        )

    def hosts(self) -> List[Any]:
        seen: List[Any] = []
        for host, _ in self.errors:
            if host not in seen:
                seen.append(host)
        return seen


class PhaseError(FleetupError):
    """A phase failed and aborted the pipeline."""

    def __init__(self, title: str, cause: BaseException):
        super().__init__(f"phase '{title}' failed: {cause}")
        self.title = title
        self.cause = cause
