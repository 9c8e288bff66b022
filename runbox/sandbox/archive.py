"""Tar archive assembly for code bundles."""

from __future__ import annotations

import io
import tarfile
from pathlib import Path

from runbox.errors import ArchiveError
from runbox.models.bundle import CodeBundle

DEFAULT_ENTRY_MODE = 0o777


class ArchiveBuilder:
    """Packs the harness script and a bundle into one uncompressed tar stream."""

    def __init__(self, harness_path: str | Path, mode: int = DEFAULT_ENTRY_MODE) -> None:
        self._harness_path = Path(harness_path)
        self._mode = mode

    @property
    def harness_path(self) -> Path:
        return self._harness_path

    def build(self, bundle: CodeBundle) -> io.BytesIO:
        try:
            harness = self._harness_path.read_bytes()
        except OSError as exc:
            raise ArchiveError(
                f"Failed to read harness script {self._harness_path}: {exc}"
            ) from exc

        buffer = io.BytesIO()
        try:
            with tarfile.open(fileobj=buffer, mode="w", format=tarfile.PAX_FORMAT) as archive:
                self._add_entry(archive, bundle.harness_name, harness)
                for path in bundle.paths():
                    self._add_entry(archive, path, bundle.files[path])
        except (OSError, tarfile.TarError, ValueError) as exc:
            raise ArchiveError(f"Failed to write bundle archive: {exc}") from exc
        buffer.seek(0)
        return buffer

    def _add_entry(self, archive: tarfile.TarFile, name: str, content: bytes) -> None:
        info = tarfile.TarInfo(name=name)
        info.mode = self._mode
        info.size = len(content)
        archive.addfile(info, io.BytesIO(content))
