# src/fleetup/observers/dispatcher.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .events import BaseEvent
from .interface import Observer

log = logging.getLogger("fleetup")


class EventBus:
    def __init__(self, observers: Optional[Iterable[Observer]] = None):
        self._observers: List[Observer] = list(observers or [])

    def subscribe(self, observer: Observer) -> None:
        if not isinstance(observer, Observer):
            raise TypeError(f"{observer!r} has no notify()")
        self._observers.append(observer)

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as e:  # observers must not break runs
                log.debug("observer %r failed on %s: %s", ob, event.__class__.__name__, e)
