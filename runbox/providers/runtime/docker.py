"""Docker runtime backed by the docker SDK low-level API client."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Sequence

import docker
import structlog
from docker.errors import BuildError, DockerException
from docker.utils import kwargs_from_env

from runbox.errors import RuntimeUnavailableError
from runbox.models.sandbox import ContainerSpec, ImageRecord, WaitStatus
from runbox.providers.runtime.base import WAIT_NOT_RUNNING, ContainerRuntime

DEFAULT_CLIENT_TIMEOUT = 60


class DockerRuntime(ContainerRuntime):
    """Runtime connection shared by every component for the process lifetime.

    Each wait runs on its own daemon thread, so concurrent runs sharing this
    connection never queue behind one another's waits.
    """

    def __init__(self, api: docker.APIClient, *, logger: Any | None = None) -> None:
        self._api = api
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @classmethod
    def from_env(
        cls, timeout: int = DEFAULT_CLIENT_TIMEOUT, **kwargs: Any
    ) -> DockerRuntime:
        try:
            api = docker.APIClient(version="auto", timeout=timeout, **kwargs_from_env())
        except DockerException as exc:
            raise RuntimeUnavailableError(f"Docker daemon is not reachable: {exc}") from exc
        return cls(api, **kwargs)

    def __enter__(self) -> DockerRuntime:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def list_images(self, reference: str) -> list[ImageRecord]:
        images = self._api.images(all=True, filters={"reference": reference})
        return [
            ImageRecord(
                image_id=image["Id"],
                tags=tuple(image.get("RepoTags") or ()),
            )
            for image in images
        ]

    def build_image(self, context_dir: Path, tags: Sequence[str]) -> None:
        if not tags:
            raise ValueError("At least one tag is required to build an image.")
        build_log: list[dict[str, Any]] = []
        # The daemon accepts a single tag per build request; extra tags are applied after.
        for chunk in self._api.build(
            path=str(context_dir), tag=tags[0], rm=True, decode=True
        ):
            build_log.append(chunk)
            if "error" in chunk:
                raise BuildError(chunk["error"], build_log)
            line = chunk.get("stream", "").strip()
            if line:
                self._logger.debug("runner_image_build_output", line=line)
        for extra in tags[1:]:
            repository, _, tag = extra.partition(":")
            self._api.tag(tags[0], repository, tag or None)

    def create_container(self, spec: ContainerSpec) -> str:
        host_config = self._api.create_host_config(
            mem_limit=spec.limits.memory_bytes,
            privileged=spec.limits.privileged,
            devices=list(spec.limits.devices),
            network_mode="none" if spec.limits.network_disabled else None,
        )
        response = self._api.create_container(
            image=spec.image,
            command=list(spec.command),
            working_dir=spec.working_dir,
            network_disabled=spec.limits.network_disabled,
            host_config=host_config,
            name=spec.name,
            platform=spec.platform,
        )
        return response["Id"]

    def put_archive(
        self,
        container_id: str,
        path: str,
        data: bytes,
        allow_overwrite_dir_with_file: bool = True,
    ) -> None:
        if allow_overwrite_dir_with_file:
            # The daemon overwrites directories with files unless told otherwise.
            self._api.put_archive(container_id, path, data)
            return
        # APIClient.put_archive has no way to pass noOverwriteDirNonDir.
        url = self._api._url("/containers/{0}/archive", container_id)
        response = self._api._put(
            url, params={"path": path, "noOverwriteDirNonDir": "true"}, data=data
        )
        self._api._raise_for_status(response)

    def start_container(self, container_id: str) -> None:
        self._api.start(container_id)

    def wait_container(
        self, container_id: str, condition: str = WAIT_NOT_RUNNING
    ) -> Future[WaitStatus]:
        future: Future[WaitStatus] = Future()
        thread = threading.Thread(
            target=self._resolve_wait,
            args=(future, container_id, condition),
            name=f"runbox-wait-{container_id[:12]}",
            daemon=True,
        )
        thread.start()
        return future

    def container_logs(
        self,
        container_id: str,
        stdout: bool = True,
        stderr: bool = True,
        timestamps: bool = False,
    ) -> bytes:
        # APIClient.logs strips the stream framing, so the raw body is read instead.
        params = {
            "stdout": int(stdout),
            "stderr": int(stderr),
            "timestamps": int(timestamps),
            "follow": 0,
            "tail": "all",
        }
        url = self._api._url("/containers/{0}/logs", container_id)
        response = self._api._get(url, params=params, stream=False)
        self._api._raise_for_status(response)
        return response.content

    def remove_container(self, container_id: str, force: bool = False) -> None:
        self._api.remove_container(container_id, force=force)

    def close(self) -> None:
        self._api.close()

    def _resolve_wait(
        self, future: Future[WaitStatus], container_id: str, condition: str
    ) -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(self._wait(container_id, condition))
        except BaseException as exc:
            future.set_exception(exc)

    def _wait(self, container_id: str, condition: str) -> WaitStatus:
        response = self._api.wait(container_id, condition=condition)
        error = response.get("Error") or None
        message = error.get("Message") if isinstance(error, dict) else error
        return WaitStatus(
            status_code=int(response.get("StatusCode", -1)),
            error=message or None,
        )
