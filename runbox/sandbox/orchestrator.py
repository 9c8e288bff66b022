"""Per-run sandbox container lifecycle."""

from __future__ import annotations

import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any
from uuid import uuid4

import structlog

from runbox.config import RunnerSettings
from runbox.errors import (
    ArchiveError,
    CollectionError,
    DisposalError,
    FrameError,
    InjectionError,
    RunError,
    RunTimeoutError,
    SetupError,
    StartError,
    WaitError,
)
from runbox.models.bundle import BundleSource, CodeBundle
from runbox.models.sandbox import (
    ContainerLimits,
    ContainerSpec,
    ContainerState,
    ExecutionResult,
    RunState,
    SandboxContainer,
    WaitStatus,
)
from runbox.providers.runtime.base import WAIT_NOT_RUNNING, ContainerRuntime
from runbox.sandbox.archive import ArchiveBuilder
from runbox.sandbox.demux import OutputDemuxer
from runbox.sandbox.images import ImageProvisioner


class SandboxOrchestrator:
    """Runs one bundle in a fresh container and always removes the container.

    A run moves through ``created -> provisioned -> started -> waited ->
    collected -> disposed``. Any failure after the container exists goes
    straight to disposal before the error is raised.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        settings: RunnerSettings | None = None,
        *,
        provisioner: ImageProvisioner | None = None,
        archive_builder: ArchiveBuilder | None = None,
        demuxer: OutputDemuxer | None = None,
        logger: Any | None = None,
    ) -> None:
        self._runtime = runtime
        self._settings = settings if settings is not None else RunnerSettings()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._provisioner = (
            provisioner
            if provisioner is not None
            else ImageProvisioner(runtime, logger=self._logger)
        )
        self._archive_builder = (
            archive_builder
            if archive_builder is not None
            else ArchiveBuilder(self._settings.harness_path)
        )
        self._demuxer = demuxer if demuxer is not None else OutputDemuxer()
        self._state = RunState.CREATED

    @property
    def settings(self) -> RunnerSettings:
        return self._settings

    @property
    def state(self) -> RunState:
        return self._state

    def run_source(
        self, source: BundleSource, *, timeout_seconds: float | None = None
    ) -> ExecutionResult:
        return self.run(source.load(), timeout_seconds=timeout_seconds)

    def run(
        self, bundle: CodeBundle, *, timeout_seconds: float | None = None
    ) -> ExecutionResult:
        timeout = (
            timeout_seconds
            if timeout_seconds is not None
            else self._settings.wait_timeout_seconds
        )
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self._state = RunState.CREATED
        image_id = self._provisioner.ensure(
            self._settings.image_reference, Path(self._settings.build_context)
        )
        self._state = RunState.PROVISIONED

        container = self._create(image_id, bundle)
        started = time.monotonic()
        try:
            result = self._execute(container, bundle, timeout, started)
        except BaseException as exc:
            # A still-running container is force-removed by _dispose.
            if container.state is not ContainerState.RUNNING:
                container.state = ContainerState.ERRORED
            disposal_error = self._dispose(container)
            if isinstance(exc, RunError):
                exc.disposal_error = disposal_error
            raise

        disposal_error = self._dispose(container)
        if disposal_error is not None:
            disposal_error.result = result
            raise disposal_error
        return result

    def _create(self, image_id: str, bundle: CodeBundle) -> SandboxContainer:
        spec = ContainerSpec(
            image=image_id,
            command=("sh", f"./{bundle.harness_name}"),
            working_dir=self._settings.workdir,
            limits=ContainerLimits(
                memory_bytes=self._settings.memory_limit_bytes,
                network_disabled=True,
                privileged=False,
                devices=(),
            ),
            name=f"{self._settings.container_name_prefix}-{uuid4().hex[:8]}",
            platform=self._settings.platform,
        )
        try:
            container_id = self._runtime.create_container(spec)
        except Exception as exc:
            raise SetupError(f"Failed to create sandbox container: {exc}") from exc
        self._logger.info(
            "sandbox_container_created",
            container_id=container_id,
            image_id=image_id,
            name=spec.name,
            memory_bytes=spec.limits.memory_bytes,
        )
        return SandboxContainer(container_id=container_id, spec=spec)

    def _execute(
        self,
        container: SandboxContainer,
        bundle: CodeBundle,
        timeout: float | None,
        started: float,
    ) -> ExecutionResult:
        container_id = container.container_id
        try:
            archive = self._archive_builder.build(bundle)
        except ArchiveError as exc:
            raise InjectionError(str(exc), container_id=container_id) from exc
        try:
            self._runtime.put_archive(
                container_id,
                self._settings.workdir,
                archive.getvalue(),
                allow_overwrite_dir_with_file=True,
            )
        except Exception as exc:
            raise InjectionError(
                f"Failed to copy bundle into container: {exc}", container_id=container_id
            ) from exc
        self._logger.debug(
            "sandbox_bundle_injected", container_id=container_id, files=len(bundle)
        )

        try:
            self._runtime.start_container(container_id)
        except Exception as exc:
            raise StartError(
                f"Failed to start container: {exc}", container_id=container_id
            ) from exc
        container.state = ContainerState.RUNNING
        self._state = RunState.STARTED

        status = self._wait(container, timeout)
        container.state = ContainerState.EXITED
        self._state = RunState.WAITED

        try:
            raw = self._runtime.container_logs(
                container_id, stdout=True, stderr=True, timestamps=False
            )
        except Exception as exc:
            raise CollectionError(
                f"Failed to read container logs: {exc}", container_id=container_id
            ) from exc
        try:
            stdout, stderr = self._demuxer.split(raw)
        except FrameError as exc:
            raise CollectionError(str(exc), container_id=container_id) from exc
        self._state = RunState.COLLECTED

        duration_ms = int((time.monotonic() - started) * 1000)
        self._logger.info(
            "sandbox_run_finished",
            container_id=container_id,
            exit_code=status.status_code,
            duration_ms=duration_ms,
        )
        return ExecutionResult(
            stdout=stdout,
            stderr=stderr,
            exit_code=status.status_code,
            container_id=container_id,
            image_id=container.spec.image,
            duration_ms=duration_ms,
        )

    def _wait(self, container: SandboxContainer, timeout: float | None) -> WaitStatus:
        container_id = container.container_id
        try:
            future = self._runtime.wait_container(container_id, WAIT_NOT_RUNNING)
        except Exception as exc:
            raise WaitError(
                f"Failed to wait for container: {exc}", container_id=container_id
            ) from exc

        try:
            status = future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            if future.done():
                raise WaitError(
                    f"Failed to wait for container: {exc}", container_id=container_id
                ) from exc
            future.cancel()
            raise RunTimeoutError(
                f"Container did not stop within {timeout} seconds",
                container_id=container_id,
            ) from exc
        except Exception as exc:
            raise WaitError(
                f"Failed to wait for container: {exc}", container_id=container_id
            ) from exc

        if status.error:
            raise WaitError(
                status.error, container_id=container_id, status_code=status.status_code
            )
        return status

    def _dispose(self, container: SandboxContainer) -> DisposalError | None:
        force = container.state is ContainerState.RUNNING
        try:
            self._runtime.remove_container(container.container_id, force=force)
        except Exception as exc:
            error = DisposalError(
                f"Failed to remove container {container.container_id}: {exc}",
                container_id=container.container_id,
            )
            error.__cause__ = exc
            self._logger.error(
                "sandbox_container_disposal_failed",
                container_id=container.container_id,
                error=str(exc),
            )
            return error
        container.state = ContainerState.DISPOSED
        self._state = RunState.DISPOSED
        self._logger.debug(
            "sandbox_container_disposed", container_id=container.container_id, force=force
        )
        return None
