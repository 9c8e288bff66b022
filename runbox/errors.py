"""Error taxonomy for sandbox runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from runbox.models.sandbox import ExecutionResult


class SandboxError(RuntimeError):
    """Base error for every failure raised by runbox."""


class ConfigError(SandboxError):
    """Raised when runner settings cannot be loaded or are invalid."""


class BundleError(SandboxError, ValueError):
    """Raised when a code bundle is malformed or cannot be loaded."""


class ArchiveError(SandboxError):
    """Raised when the bundle archive cannot be assembled."""


class FrameError(SandboxError):
    """Raised on a truncated or malformed log frame."""


class RuntimeUnavailableError(SandboxError):
    """Raised when the container runtime cannot be reached."""


class ProvisioningError(SandboxError):
    """Raised when the runner image cannot be listed or built."""


class SetupError(SandboxError):
    """Raised when the sandbox container cannot be created."""


class RunError(SandboxError):
    """Base for failures after the container exists.

    The container has already been disposed (or disposal was attempted) by the
    time one of these reaches the caller. A failed disposal is kept on
    ``disposal_error`` instead of replacing the primary failure.
    """

    def __init__(self, message: str, *, container_id: str | None = None) -> None:
        super().__init__(message)
        self.container_id = container_id
        self.disposal_error: DisposalError | None = None


class InjectionError(RunError):
    """Raised when the bundle cannot be built or copied into the container."""


class StartError(RunError):
    """Raised when the container fails to start."""


class WaitError(RunError):
    """Raised when waiting for the container fails."""

    def __init__(
        self,
        message: str,
        *,
        container_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, container_id=container_id)
        self.status_code = status_code


class RunTimeoutError(WaitError):
    """Raised when the container does not stop before the deadline."""


class CollectionError(RunError):
    """Raised when container output cannot be retrieved or demultiplexed."""


class DisposalError(SandboxError):
    """Raised when a container cannot be removed.

    On the success path the completed run is still available on ``result``.
    """

    def __init__(
        self,
        message: str,
        *,
        container_id: str,
        result: ExecutionResult | None = None,
    ) -> None:
        super().__init__(message)
        self.container_id = container_id
        self.result = result


__all__ = [
    "ArchiveError",
    "BundleError",
    "CollectionError",
    "ConfigError",
    "DisposalError",
    "FrameError",
    "InjectionError",
    "ProvisioningError",
    "RunError",
    "RunTimeoutError",
    "RuntimeUnavailableError",
    "SandboxError",
    "SetupError",
    "StartError",
    "WaitError",
]
