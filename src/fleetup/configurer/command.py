# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/configurer/command.py
from __future__ import annotations

import shlex
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple

# Many distros leave the sbin directories out of PATH for non-login shells.
SBIN_PATH = "/usr/local/sbin:/usr/sbin:/sbin:/usr/local/bin:/usr/bin:/bin"


@dataclass(frozen=True)
class Command:
    """
    A remote command as an explicit argument list.

    Quoting and elevation happen in one place (`render`), so the mapping from a
    primitive to the command it runs can be asserted on `argv` without a shell.
    """

    argv: Tuple[str, ...]
    sudo: bool = False
    stdin: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    redirect_to: Optional[str] = None

    def render(self) -> str:
        inner = " ".join(shlex.quote(a) for a in self.argv)
        if self.env:
            exports = " ".join(f"{k}={shlex.quote(v)}" for k, v in self.env.items())
            inner = f"env {exports} {inner}"
        if self.redirect_to:
            inner = f"{inner} > {shlex.quote(self.redirect_to)}"
        if self.sudo:
            return f"sudo -n -- sh -c {shlex.quote(inner)}"
        return inner

    def without_sudo(self) -> "Command":
        return replace(self, sudo=False)

    def __str__(self) -> str:
        return self.render()


def cmd(
    *argv: str,
    sudo: bool = False,
    stdin: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    redirect_to: Optional[str] = None,
) -> Command:
    return Command(
        argv=tuple(str(a) for a in argv),
        sudo=sudo,
        stdin=stdin,
        env=dict(env or {}),
        redirect_to=redirect_to,
    )


def sbin(*argv: str, sudo: bool = False) -> Command:
    """Command with sbin directories on PATH (ip, sysctl ...)."""
    return cmd(*argv, sudo=sudo, env={"PATH": SBIN_PATH})

