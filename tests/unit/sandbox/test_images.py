"""Unit tests for runner image provisioning."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FakeRuntime
from runbox.errors import ProvisioningError
from runbox.models.sandbox import ImageRecord
from runbox.sandbox.images import ImageProvisioner


def test_existing_image_is_returned_without_building(
    runtime: FakeRuntime, build_context: Path
) -> None:
    provisioner = ImageProvisioner(runtime)

    first = provisioner.ensure("runner", build_context)
    second = provisioner.ensure("runner", build_context)

    assert first == second == "sha256:runner"
    assert runtime.builds == []
    assert runtime.list_queries == ["runner", "runner"]


def test_first_match_wins_when_several_images_match(build_context: Path) -> None:
    runtime = FakeRuntime(
        images=[ImageRecord("sha256:newest"), ImageRecord("sha256:older")]
    )

    assert ImageProvisioner(runtime).ensure("runner", build_context) == "sha256:newest"


def test_absent_image_is_built_once_then_reused(build_context: Path) -> None:
    runtime = FakeRuntime()
    provisioner = ImageProvisioner(runtime)

    image_id = provisioner.ensure("runner", build_context)

    assert runtime.builds == [(build_context, ("runner:latest",))]
    assert image_id in [image.image_id for image in runtime.list_images("runner")]

    assert provisioner.ensure("runner", build_context) == image_id
    assert len(runtime.builds) == 1


def test_build_failure_raises_provisioning_error(build_context: Path) -> None:
    runtime = FakeRuntime()
    runtime.failures["build_image"] = RuntimeError("no space left on device")

    with pytest.raises(ProvisioningError, match="no space left") as excinfo:
        ImageProvisioner(runtime).ensure("runner", build_context)

    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_empty_listing_after_build_raises(build_context: Path) -> None:
    runtime = FakeRuntime(build_creates_image=False)

    with pytest.raises(ProvisioningError, match="not found after build"):
        ImageProvisioner(runtime).ensure("runner", build_context)


def test_listing_failure_raises_provisioning_error(build_context: Path) -> None:
    runtime = FakeRuntime()
    runtime.failures["list_images"] = ConnectionError("daemon unreachable")

    with pytest.raises(ProvisioningError, match="daemon unreachable"):
        ImageProvisioner(runtime).ensure("runner", build_context)
    assert runtime.builds == []


def test_missing_build_context_is_rejected(tmp_path: Path) -> None:
    runtime = FakeRuntime()

    with pytest.raises(ProvisioningError, match="Build context"):
        ImageProvisioner(runtime).ensure("runner", tmp_path / "nope")
    assert runtime.builds == []
