# src/fleetup/observers/console.py
from typing import Any

from .events import BaseEvent

_CONTEXT = ("ts", "run_id", "cluster")


def _fmt(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


class ConsoleObserver:
    """Prints one line per event, e.g. for --events."""

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        k = event.__class__.__name__
        data = " ".join(f"{x}={_fmt(y)}" for x, y in d.items() if x not in _CONTEXT and y not in (None, [], ""))
        print(f"[{d['ts']}] {k} run={d['run_id']} cluster={d['cluster']} {data}".rstrip())
