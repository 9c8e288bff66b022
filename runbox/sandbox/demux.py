"""Demultiplexing of framed container log streams.

Each frame is an 8-byte header followed by its payload::

    [selector, 0, 0, 0, size1, size2, size3, size4]

``selector`` names the originating stream and ``size`` is a big-endian
unsigned 32-bit payload length.
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO, Union

from runbox.errors import FrameError

HEADER_SIZE = 8
STDIN = 0
STDOUT = 1
STDERR = 2
SYSTEMERR = 3

_HEADER = struct.Struct(">BxxxL")


class OutputDemuxer:
    def split(self, stream: Union[bytes, bytearray, BinaryIO]) -> tuple[bytes, bytes]:
        """Return ``(stdout, stderr)`` from a framed log stream.

        Raises :class:`FrameError` on a truncated frame, an unknown selector or
        a daemon-side system error frame.
        """
        reader = io.BytesIO(stream) if isinstance(stream, (bytes, bytearray)) else stream
        stdout = bytearray()
        stderr = bytearray()
        offset = 0
        while True:
            header = _read_exact(reader, HEADER_SIZE)
            if not header:
                break
            if len(header) < HEADER_SIZE:
                raise FrameError(
                    f"Truncated frame header at offset {offset}: "
                    f"got {len(header)} of {HEADER_SIZE} bytes"
                )
            selector, size = _HEADER.unpack(header)
            payload = _read_exact(reader, size)
            if len(payload) < size:
                raise FrameError(
                    f"Truncated frame payload at offset {offset}: "
                    f"got {len(payload)} of {size} bytes"
                )
            if selector in (STDIN, STDOUT):
                stdout += payload
            elif selector == STDERR:
                stderr += payload
            elif selector == SYSTEMERR:
                raise FrameError(
                    "Runtime reported an error in the log stream: "
                    + payload.decode("utf-8", errors="replace")
                )
            else:
                raise FrameError(f"Unknown stream selector {selector} at offset {offset}")
            offset += HEADER_SIZE + size
        return bytes(stdout), bytes(stderr)


def _read_exact(reader: BinaryIO, size: int) -> bytes:
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = reader.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)
