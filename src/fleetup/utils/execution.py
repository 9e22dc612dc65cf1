# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import threading
from dataclasses import dataclass, field

from fleetup.errors import Cancelled


@dataclass(frozen=True)
class ExecutionContext:
    """
    controls how commands are executed
    """

    run_id: str = ""
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def check(self) -> None:
        if self.cancel_event.is_set():
            raise Cancelled("run cancelled")
