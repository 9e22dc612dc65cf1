# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/phase/dispatch.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

from fleetup.cluster.host import Host
from fleetup.errors import HostErrors
from fleetup.utils.execution import ExecutionContext

log = logging.getLogger("fleetup")

HostFunc = Callable[[Host], None]


def _run_chain(
    host: Host,
    funcs: Sequence[HostFunc],
    independent: bool,
    ctx: Optional[ExecutionContext],
) -> List[BaseException]:
    errors: List[BaseException] = []
    for fn in funcs:
        try:
            if ctx is not None:
                ctx.check()
            fn(host)
        except Exception as e:
            log.debug("%s: %s failed: %s", host, getattr(fn, "__name__", fn), e)
            errors.append(e)
            if not independent:
                break
    return errors


def parallel_do(
    hosts: Sequence[Host],
    *funcs: HostFunc,
    concurrency: int = 0,
    independent: bool = False,
    ctx: Optional[ExecutionContext] = None,
) -> None:
    """
    Run `funcs` for every host, hosts in parallel.

    For one host the functions run in the given order. By default the chain
    stops at the first failure; with independent=True every function runs and
    every failure is kept. `concurrency` caps the number of hosts in flight,
    0 means one worker per host.

    Every host finishes before this returns. Raises HostErrors naming each
    failing host and cause; nothing is retried.
    """
    if not hosts or not funcs:
        return

    workers = len(hosts) if concurrency <= 0 else min(concurrency, len(hosts))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fleetup") as pool:
        futures = [
            (h, pool.submit(_run_chain, h, funcs, independent, ctx))
            for h in hosts
        ]
        failures: List[Tuple[Host, BaseException]] = []
        for h, fut in futures:
            for err in fut.result():
                failures.append((h, err))

    if failures:
        raise HostErrors(failures)
