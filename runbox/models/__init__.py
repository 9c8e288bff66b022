"""Shared data models for the runbox application."""

from runbox.models.bundle import (
    BundleSource,
    CodeBundle,
    DirectoryBundleSource,
    InMemoryBundleSource,
)
from runbox.models.sandbox import (
    ContainerLimits,
    ContainerSpec,
    ContainerState,
    ExecutionResult,
    ImageRecord,
    RunState,
    SandboxContainer,
    WaitStatus,
)

__all__ = [
    "BundleSource",
    "CodeBundle",
    "ContainerLimits",
    "ContainerSpec",
    "ContainerState",
    "DirectoryBundleSource",
    "ExecutionResult",
    "ImageRecord",
    "InMemoryBundleSource",
    "RunState",
    "SandboxContainer",
    "WaitStatus",
]
