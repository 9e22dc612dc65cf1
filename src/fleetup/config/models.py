# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetup/config/models.py

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class SSHSpec(_Frozen):
    address: str
    user: str = "root"
    port: int = Field(default=22, ge=1, le=65535)
    key_path: Optional[Path] = Field(default=None, alias="keyPath")
    password: Optional[str] = None


class HostSpec(_Frozen):
    role: Literal["controller", "worker", "controller+worker", "single"] = "worker"
    ssh: SSHSpec
    upload_binary_path: Optional[Path] = Field(default=None, alias="uploadBinaryPath")
    reset: bool = False
    hostname: Optional[str] = None                 # overrides the remote `hostname`
    os: Optional[str] = None                       # overrides /etc/os-release probing
    private_interface: Optional[str] = Field(default=None, alias="privateInterface")
    private_address: Optional[str] = Field(default=None, alias="privateAddress")


class K0sSpec(_Frozen):
    version: str

    @field_validator("version")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("k0s version must not be empty")
        return v


class ConcurrencyOptions(_Frozen):
    limit: int = Field(default=0, ge=0)            # 0: one worker per host
    uploads: int = Field(default=5, ge=1)


class Options(_Frozen):
    concurrency: ConcurrencyOptions = ConcurrencyOptions()


class ClusterSpec(_Frozen):
    hosts: List[HostSpec] = Field(min_length=1)
    k0s: K0sSpec
    options: Options = Options()

    @model_validator(mode="after")
    def _unique_ssh_targets(self) -> "ClusterSpec":
        seen = set()
        for h in self.hosts:
            key = (h.ssh.address, h.ssh.port)
            if key in seen:
                raise ValueError(f"duplicate host address {h.ssh.address}:{h.ssh.port}")
            seen.add(key)
        return self


class ClusterMetadata(_Frozen):
    name: str = "fleetup-cluster"


class ClusterConfig(_Frozen):
    api_version: Literal["fleetup/v1"] = Field(default="fleetup/v1", alias="apiVersion")
    kind: Literal["Cluster"] = "Cluster"
    metadata: ClusterMetadata = ClusterMetadata()
    spec: ClusterSpec
