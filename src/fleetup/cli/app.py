# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/cli/app.py
from __future__ import annotations

import signal
from pathlib import Path
from typing import List, Optional

import typer

from fleetup.cluster.host import Cluster
from fleetup.config.loader import load_config
from fleetup.config.models import ClusterConfig
from fleetup.errors import FleetupError
from fleetup.logging.log import init_logging
from fleetup.observers.console import ConsoleObserver
from fleetup.observers.jsonfile import JsonFileObserver
from fleetup.observers.logger import LoggerObserver
from fleetup.phase.base import Phase
from fleetup.phase.connect import Connect, ConnectionFactory
from fleetup.phase.detect_os import DetectOS
from fleetup.phase.download_binaries import DownloadBinaries
from fleetup.phase.gather_facts import GatherFacts
from fleetup.phase.lock import Lock, Unlock
from fleetup.phase.manager import Manager
from fleetup.phase.upload_binaries import UploadBinaries
from fleetup.phase.validate_hosts import ValidateHosts
from fleetup.remote.ssh import SSHConnection
from fleetup.utils.execution import ExecutionContext

# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="fleetup: deploy and verify k0s binaries across a fleet of hosts")

ConfigOption = typer.Option(
    Path("fleetup.yaml"), "--config", "-c",
    help="Cluster config file", exists=False, dir_okay=False,
)


def apply_phases(factory: ConnectionFactory = SSHConnection.connect) -> List[Phase]:
    lock = Lock()
    return [
        Connect(factory),
        DetectOS(),
        lock,
        GatherFacts(),
        ValidateHosts(),
        DownloadBinaries(),
        UploadBinaries(),
        Unlock(lock),
    ]


def with_concurrency(cfg: ClusterConfig, limit: Optional[int], uploads: Optional[int]) -> ClusterConfig:
    """Command line flags win over the config file."""
    conc = cfg.spec.options.concurrency
    update = {}
    if limit is not None:
        update["limit"] = limit
    if uploads is not None:
        update["uploads"] = uploads
    if not update:
        return cfg
    conc = conc.model_copy(update=update)
    options = cfg.spec.options.model_copy(update={"concurrency": conc})
    spec = cfg.spec.model_copy(update={"options": options})
    return cfg.model_copy(update={"spec": spec})


@app.command()
def apply(
    config: Path = ConfigOption,
    debug: bool = typer.Option(False, "--debug", "-d", help="Verbose console output"),
    concurrency: Optional[int] = typer.Option(None, min=0, help="Hosts acted on at once, 0 for all"),
    concurrent_uploads: Optional[int] = typer.Option(None, min=1, help="Binary uploads at once"),
    events: bool = typer.Option(False, "--events", help="Print lifecycle events to the console"),
) -> None:
    """
    Connect to every host, validate it and make sure it runs the desired k0s binary.
    """
    logger, run_id, _ = init_logging(verbose=debug)

    try:
        cfg = with_concurrency(load_config(config), concurrency, concurrent_uploads)
    except FleetupError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    observers = [
        LoggerObserver(logger),
        JsonFileObserver(Path.home() / ".fleetup/logs" / f"{run_id}.jsonl"),
    ]

    cluster = Cluster.from_config(cfg, ExecutionContext(run_id=run_id))
    manager = Manager(cluster, observers=observers).add(*apply_phases())
    if events:
        manager.bus.subscribe(ConsoleObserver())

    previous = signal.signal(signal.SIGINT, lambda *_: manager.cancel())
    try:
        report = manager.run()
    except FleetupError as e:
        logger.error("apply failed: %s", e)
        raise typer.Exit(code=1)
    finally:
        signal.signal(signal.SIGINT, previous)
        for h in cluster.hosts:
            h.disconnect()

    logger.info("apply finished: %s", report.summary())
    for h in cluster.hosts:
        md = h.metadata
        logger.info("%s: %s %s k0s=%s", h, md.hostname, md.arch, md.binary_version or "-")


@app.command("validate-config")
def validate_config(config: Path = ConfigOption) -> None:
    """
    Load and validate a cluster config without connecting anywhere.
    """
    try:
        cfg = load_config(config)
    except FleetupError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    typer.echo(
        f"{cfg.metadata.name}: {len(cfg.spec.hosts)} host(s), k0s {cfg.spec.k0s.version}"
    )


if __name__ == "__main__":
    app()
