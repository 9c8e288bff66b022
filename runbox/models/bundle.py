"""Code bundles and the sources that produce them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Mapping, Protocol, Union

from runbox.errors import BundleError

DEFAULT_HARNESS_NAME = "timer.sh"

FileContent = Union[str, bytes]


def _validate_path(path: str, harness_name: str) -> str:
    if not isinstance(path, str) or not path:
        raise BundleError("Bundle paths must be non-empty strings.")
    if "\\" in path:
        raise BundleError(f"Bundle path must use '/' separators: {path}")
    posix = PurePosixPath(path)
    if posix.is_absolute():
        raise BundleError(f"Bundle path must be relative: {path}")
    if ".." in posix.parts:
        raise BundleError(f"Bundle path escapes the working directory: {path}")
    normalized = posix.as_posix()
    if normalized in ("", "."):
        raise BundleError(f"Bundle path does not name a file: {path}")
    if normalized == PurePosixPath(harness_name).as_posix():
        raise BundleError(f"Bundle path collides with the harness script: {path}")
    return normalized


def _encode(content: FileContent, path: str) -> bytes:
    if isinstance(content, bytes):
        return content
    if isinstance(content, str):
        return content.encode("utf-8")
    raise BundleError(f"Unsupported content type for {path}: {type(content).__name__}")


@dataclass(frozen=True)
class CodeBundle:
    """Source files to inject next to the harness script.

    Paths are stored in normalized POSIX form; content is raw bytes.
    """

    files: Mapping[str, bytes] = field(default_factory=dict)
    harness_name: str = DEFAULT_HARNESS_NAME

    def __post_init__(self) -> None:
        if not self.harness_name:
            raise BundleError("Harness name must not be empty.")
        checked: dict[str, bytes] = {}
        for path, content in self.files.items():
            normalized = _validate_path(path, self.harness_name)
            if normalized in checked:
                raise BundleError(f"Duplicate bundle path: {path}")
            checked[normalized] = _encode(content, path)
        object.__setattr__(self, "files", MappingProxyType(checked))

    @classmethod
    def from_mapping(
        cls,
        files: Mapping[str, FileContent],
        harness_name: str = DEFAULT_HARNESS_NAME,
    ) -> CodeBundle:
        return cls(files=dict(files), harness_name=harness_name)

    def __len__(self) -> int:
        return len(self.files)

    def paths(self) -> list[str]:
        return sorted(self.files)

    def to_json_dict(self) -> dict[str, str]:
        return {
            path: content.decode("utf-8", errors="replace")
            for path, content in sorted(self.files.items())
        }


class BundleSource(Protocol):
    def load(self) -> CodeBundle:
        ...


class InMemoryBundleSource(BundleSource):
    def __init__(
        self,
        files: Mapping[str, FileContent],
        harness_name: str = DEFAULT_HARNESS_NAME,
    ) -> None:
        self._files = dict(files)
        self._harness_name = harness_name

    def load(self) -> CodeBundle:
        return CodeBundle.from_mapping(self._files, harness_name=self._harness_name)


class DirectoryBundleSource(BundleSource):
    """Loads every regular file under ``root``, keyed by its relative path."""

    def __init__(self, root: str | Path, harness_name: str = DEFAULT_HARNESS_NAME) -> None:
        self._root = Path(root)
        self._harness_name = harness_name

    @property
    def root(self) -> Path:
        return self._root

    def load(self) -> CodeBundle:
        if not self._root.is_dir():
            raise BundleError(f"Bundle directory not found: {self._root}")
        files: dict[str, bytes] = {}
        for entry in sorted(self._root.rglob("*")):
            if not entry.is_file():
                continue
            relative = entry.relative_to(self._root).as_posix()
            try:
                files[relative] = entry.read_bytes()
            except OSError as exc:
                raise BundleError(f"Failed to read bundle file {entry}: {exc}") from exc
        return CodeBundle(files=files, harness_name=self._harness_name)
