"""Container runtime interface."""

from __future__ import annotations

from concurrent.futures import Future
from pathlib import Path
from typing import Protocol, Sequence

from runbox.models.sandbox import ContainerSpec, ImageRecord, WaitStatus

WAIT_NOT_RUNNING = "not-running"


class ContainerRuntime(Protocol):
    def list_images(self, reference: str) -> list[ImageRecord]:
        ...

    def build_image(self, context_dir: Path, tags: Sequence[str]) -> None:
        ...

    def create_container(self, spec: ContainerSpec) -> str:
        ...

    def put_archive(
        self,
        container_id: str,
        path: str,
        data: bytes,
        allow_overwrite_dir_with_file: bool = True,
    ) -> None:
        ...

    def start_container(self, container_id: str) -> None:
        ...

    def wait_container(
        self, container_id: str, condition: str = WAIT_NOT_RUNNING
    ) -> Future[WaitStatus]:
        ...

    def container_logs(
        self,
        container_id: str,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = False,
    ) -> bytes:
        ...

    def remove_container(self, container_id: str, force: bool = False) -> None:
        ...

    def close(self) -> None:
        ...
