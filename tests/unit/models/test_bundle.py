"""Unit tests for code bundles and bundle sources."""

from __future__ import annotations

from pathlib import Path

import pytest

from runbox.errors import BundleError
from runbox.models.bundle import CodeBundle, DirectoryBundleSource, InMemoryBundleSource


def test_bundle_encodes_text_content_as_utf8() -> None:
    bundle = CodeBundle.from_mapping({"main.py": "print('héllo')", "data.bin": b"\x00\x01"})

    assert bundle.files["main.py"] == "print('héllo')".encode("utf-8")
    assert bundle.files["data.bin"] == b"\x00\x01"
    assert len(bundle) == 2
    assert bundle.paths() == ["data.bin", "main.py"]


@pytest.mark.parametrize("path", ["", "/etc/passwd", "../outside.py", "pkg/../../x", "win\\path.py"])
def test_bundle_rejects_invalid_paths(path: str) -> None:
    with pytest.raises(BundleError):
        CodeBundle.from_mapping({path: "x"})


def test_bundle_rejects_path_colliding_with_harness() -> None:
    with pytest.raises(BundleError, match="harness"):
        CodeBundle.from_mapping({"timer.sh": "echo hi"})

    bundle = CodeBundle.from_mapping({"timer.sh": "echo hi"}, harness_name="run.sh")
    assert bundle.paths() == ["timer.sh"]


@pytest.mark.parametrize("path", ["./timer.sh", "timer.sh/", ".//timer.sh"])
def test_bundle_rejects_spellings_of_the_harness_path(path: str) -> None:
    with pytest.raises(BundleError, match="harness"):
        CodeBundle.from_mapping({path: "echo replaced"})


@pytest.mark.parametrize("path", [".", "./", "./."])
def test_bundle_rejects_paths_naming_the_working_directory(path: str) -> None:
    with pytest.raises(BundleError):
        CodeBundle.from_mapping({path: "x"})


def test_bundle_rejects_paths_that_normalize_to_the_same_file() -> None:
    with pytest.raises(BundleError, match="Duplicate"):
        CodeBundle.from_mapping({"main.py": "a", "./main.py": "b"})

    with pytest.raises(BundleError, match="Duplicate"):
        CodeBundle.from_mapping({"pkg/util.py": "a", "pkg//util.py": "b"})


def test_bundle_stores_normalized_paths() -> None:
    bundle = CodeBundle.from_mapping({"./pkg//util.py": "VALUE = 1", "./main.py": "print(1)"})

    assert bundle.paths() == ["main.py", "pkg/util.py"]


def test_bundle_files_are_read_only() -> None:
    bundle = CodeBundle.from_mapping({"main.py": "print(1)"})

    with pytest.raises(TypeError):
        bundle.files["other.py"] = b""  # type: ignore[index]


def test_directory_source_keeps_nested_relative_paths(tmp_path: Path) -> None:
    root = tmp_path / "bundle"
    (root / "pkg").mkdir(parents=True)
    (root / "main.py").write_text("import pkg.util\n", encoding="utf-8")
    (root / "pkg" / "util.py").write_text("VALUE = 1\n", encoding="utf-8")
    (root / "pkg" / "main.py").write_text("# nested\n", encoding="utf-8")

    bundle = DirectoryBundleSource(root).load()

    assert bundle.paths() == ["main.py", "pkg/main.py", "pkg/util.py"]
    assert bundle.files["pkg/main.py"] == b"# nested\n"


def test_directory_source_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(BundleError, match="not found"):
        DirectoryBundleSource(tmp_path / "missing").load()


def test_in_memory_source_builds_bundle() -> None:
    bundle = InMemoryBundleSource({"main.py": "print(1+1)"}, harness_name="go.sh").load()

    assert bundle.harness_name == "go.sh"
    assert bundle.to_json_dict() == {"main.py": "print(1+1)"}
