"""Runner image provisioning."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from runbox.errors import ProvisioningError
from runbox.providers.runtime.base import ContainerRuntime


class ImageProvisioner:
    """Query-then-build provisioning of the runner image.

    The sequence is not locked: two first-time callers racing on the same
    reference may both build it. The later build simply re-tags the image.
    """

    def __init__(self, runtime: ContainerRuntime, logger: Any | None = None) -> None:
        self._runtime = runtime
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def ensure(self, reference: str, build_context: str | Path) -> str:
        existing = self._find(reference)
        if existing is not None:
            self._logger.debug("runner_image_found", reference=reference, image_id=existing)
            return existing

        context_dir = Path(build_context)
        if not context_dir.is_dir():
            raise ProvisioningError(f"Build context is not a directory: {context_dir}")

        tag = f"{reference}:latest"
        self._logger.info("runner_image_build_started", reference=reference, tag=tag)
        try:
            self._runtime.build_image(context_dir, [tag])
        except Exception as exc:
            raise ProvisioningError(f"Failed to build image {tag}: {exc}") from exc

        built = self._find(reference)
        if built is None:
            raise ProvisioningError(f"Image {reference} not found after build.")
        self._logger.info("runner_image_build_finished", reference=reference, image_id=built)
        return built

    def _find(self, reference: str) -> str | None:
        try:
            images = self._runtime.list_images(reference)
        except Exception as exc:
            raise ProvisioningError(f"Failed to list images for {reference}: {exc}") from exc
        if not images:
            return None
        return images[0].image_id
