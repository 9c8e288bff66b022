"""Unit tests for bundle archive assembly."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import extract_archive
from runbox.errors import ArchiveError
from runbox.models.bundle import CodeBundle
from runbox.sandbox.archive import ArchiveBuilder


def test_archive_holds_harness_and_every_bundle_file(tmp_path: Path) -> None:
    harness = tmp_path / "timer.sh"
    harness.write_bytes(b"#!/bin/sh\npython3 main.py\n")
    files = {
        "main.py": b"print(1+1)\n",
        "pkg/__init__.py": b"",
        "pkg/data.bin": bytes(range(256)),
        "notes.txt": "ünïcode".encode("utf-8"),
    }

    archive = ArchiveBuilder(harness).build(CodeBundle(files=files))
    entries = extract_archive(archive.getvalue())

    assert set(entries) == set(files) | {"timer.sh"}
    assert entries["timer.sh"][1] == harness.read_bytes()
    for path, content in files.items():
        assert entries[path][1] == content
    assert {mode for mode, _ in entries.values()} == {0o777}


def test_archive_uses_bundle_harness_name(tmp_path: Path) -> None:
    harness = tmp_path / "anything.sh"
    harness.write_bytes(b"echo run\n")

    archive = ArchiveBuilder(harness).build(
        CodeBundle.from_mapping({"main.py": "x = 1"}, harness_name="run.sh")
    )

    assert extract_archive(archive.getvalue())["run.sh"][1] == b"echo run\n"


def test_archive_is_rewound_and_sealed(tmp_path: Path) -> None:
    harness = tmp_path / "timer.sh"
    harness.write_bytes(b"echo\n")

    archive = ArchiveBuilder(harness).build(CodeBundle.from_mapping({}))

    assert archive.tell() == 0
    # A closed tar ends with two zero blocks.
    assert archive.getvalue().endswith(b"\0" * 1024)


def test_missing_harness_raises_archive_error(tmp_path: Path) -> None:
    builder = ArchiveBuilder(tmp_path / "missing.sh")

    with pytest.raises(ArchiveError, match="harness"):
        builder.build(CodeBundle.from_mapping({"main.py": "print(1)"}))
