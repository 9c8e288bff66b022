"""Data models for sandbox containers and runs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ContainerState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    EXITED = "exited"
    ERRORED = "errored"
    DISPOSED = "disposed"


class RunState(str, Enum):
    """Orchestrator progress through a single run."""

    CREATED = "created"
    PROVISIONED = "provisioned"
    STARTED = "started"
    WAITED = "waited"
    COLLECTED = "collected"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class ContainerLimits:
    memory_bytes: int
    network_disabled: bool = True
    privileged: bool = False
    devices: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContainerSpec:
    image: str
    command: tuple[str, ...]
    working_dir: str
    limits: ContainerLimits
    name: Optional[str] = None
    platform: Optional[str] = None


@dataclass(frozen=True)
class ImageRecord:
    image_id: str
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class WaitStatus:
    status_code: int
    error: Optional[str] = None


@dataclass
class SandboxContainer:
    container_id: str
    spec: ContainerSpec
    state: ContainerState = ContainerState.CREATED


@dataclass(frozen=True)
class ExecutionResult:
    stdout: bytes
    stderr: bytes
    exit_code: int
    container_id: str
    image_id: str
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")
