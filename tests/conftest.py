from __future__ import annotations

import threading
from typing import Dict, List, Optional

import pytest

from fleetup.cluster.host import Cluster
from fleetup.config.models import ClusterConfig
from fleetup.configurer.command import Command
from fleetup.configurer.linux import Configurer
from fleetup.errors import PrimitiveFailure


# ----------------- Fake execution collaborator -----------------

class FakeConnection:
    """
    Records every Command and simulates the handful of file commands the
    primitives rely on (mktemp, cat > f, mv -n, test, rm, stat).

    `responses` maps an argv tuple to its stdout, or to an Exception to raise.
    Anything else succeeds with empty output.
    """

    def __init__(self, responses: Optional[Dict] = None, files: Optional[Dict[str, str]] = None,
                 dirs=(), stats: Optional[Dict[str, tuple]] = None):
        self.log: List[Command] = []
        self.responses = dict(responses or {})
        self.files: Dict[str, str] = dict(files or {})
        self.dirs = set(dirs)
        self.stats = dict(stats or {})
        self.uploads: List[tuple] = []
        self.closed = False
        self._n = 0
        self._mu = threading.Lock()

    # --- helpers for assertions ---

    def argvs(self) -> List[tuple]:
        return [c.argv for c in self.log]

    def ran(self, *argv: str) -> bool:
        return tuple(argv) in self.argvs()

    def index(self, *argv: str) -> int:
        return self.argvs().index(tuple(argv))

    # --- Connection protocol ---

    def _fail(self, command: Command, msg: str = "exit status 1"):
        raise PrimitiveFailure(f"command failed (rc=1): {msg}", command=command.render())

    def exec(self, command: Command, *, timeout=None) -> str:
        with self._mu:
            self.log.append(command)
        argv = command.argv

        if argv in self.responses:
            r = self.responses[argv]
            if isinstance(r, Exception):
                raise r
            return r

        name = argv[0]
        if name == "mktemp":
            with self._mu:
                self._n += 1
                path = f"/tmp/tmp.{self._n}"
            if "-d" in argv:
                self.dirs.add(path)
            else:
                self.files[path] = ""
            return path + "\n"
        if name == "cat" and command.redirect_to:
            self.files[command.redirect_to] = command.stdin or ""
            return ""
        if name == "cat":
            if argv[1] not in self.files:
                self._fail(command, "No such file or directory")
            return self.files[argv[1]]
        if name == "mv" and argv[1] == "-n":
            src, dst = argv[2], argv[3]
            if dst not in self.files:
                self.files[dst] = self.files.pop(src)
            return ""
        if name == "test":
            flag, path = argv[1], argv[2]
            if flag == "-f" and path in self.files:
                return ""
            if flag == "-d" and path in self.dirs:
                return ""
            if flag == "-e" and (path in self.files or path in self.dirs):
                return ""
            self._fail(command)
        if name == "rm":
            self.files.pop(argv[-1], None)
            return ""
        if name == "stat":
            path = argv[-1]
            if path not in self.stats:
                self._fail(command, "No such file or directory")
            size, mtime = self.stats[path]
            return f"{size} {mtime}\n"
        return ""

    def upload(self, local_path: str, remote_path: str, *, sudo: bool = False) -> None:
        self.uploads.append((local_path, remote_path, sudo))
        self.files[remote_path] = "<binary>"

    def close(self) -> None:
        self.closed = True


def make_config(hosts: List[dict], version: str = "v1.29.2+k0s.0", **options) -> ClusterConfig:
    return ClusterConfig.model_validate({
        "apiVersion": "fleetup/v1",
        "kind": "Cluster",
        "metadata": {"name": "test"},
        "spec": {
            "hosts": hosts,
            "k0s": {"version": version},
            "options": {"concurrency": options} if options else {},
        },
    })


def host_spec(address: str, **kw) -> dict:
    spec = {"ssh": {"address": address, "user": kw.pop("user", "ubuntu")}}
    spec.update(kw)
    return spec


@pytest.fixture
def make_cluster():
    """
    Build a Cluster whose hosts are connected to FakeConnections and already
    have a linux Configurer bound.
    """
    def _make(hosts: List[dict], version: str = "v1.29.2+k0s.0", connections=None, **options) -> Cluster:
        cluster = Cluster.from_config(make_config(hosts, version, **options))
        for i, h in enumerate(cluster.hosts):
            h.connection = connections[i] if connections else FakeConnection()
            h.bind_configurer(Configurer())
        return cluster
    return _make
