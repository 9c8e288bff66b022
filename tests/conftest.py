from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from fakes import FakeRuntime
from runbox.config import RunnerSettings
from runbox.models.sandbox import ImageRecord

HARNESS_SOURCE = b'#!/bin/sh\nexec python3 "${RUNBOX_ENTRYPOINT:-main.py}"\n'


@pytest.fixture()
def build_context(tmp_path: Path) -> Path:
    context = tmp_path / "runner"
    context.mkdir()
    (context / "Dockerfile").write_text("FROM python:3.12-slim\nWORKDIR /code\n", encoding="utf-8")
    (context / "timer.sh").write_bytes(HARNESS_SOURCE)
    return context


@pytest.fixture()
def settings(build_context: Path) -> RunnerSettings:
    return RunnerSettings(
        build_context=str(build_context),
        harness_path=str(build_context / "timer.sh"),
    )


@pytest.fixture()
def runtime() -> FakeRuntime:
    return FakeRuntime(images=[ImageRecord(image_id="sha256:runner", tags=("runner:latest",))])


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()
