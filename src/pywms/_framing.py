"""Line framing and frame decoding for the adapter protocol."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

from pywms._constants import DEFAULT_MAX_FRAME_BYTES, FRAME_TERMINATOR
from pywms.exceptions import WmsDecodeError


class LineFramer:
    """Accumulates raw bytes and yields complete, trimmed, non-empty lines.

    A partial trailing line stays buffered until more data arrives. If the
    buffered remainder grows past *max_frame_bytes* it is discarded and
    :class:`WmsDecodeError` (``frame_too_large``) is raised after every
    complete line in the chunk has been yielded. The rest of that line, up
    to its terminator, is dropped as well.
    """

    def __init__(self, *, max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES) -> None:
        self._buffer = bytearray()
        self._max_frame_bytes = max_frame_bytes
        self._discarding = False

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    @property
    def discarding(self) -> bool:
        """True while skipping the tail of an oversized line."""
        return self._discarding

    def feed(self, data: bytes) -> Iterator[str]:
        self._buffer.extend(data)
        while True:
            idx = self._buffer.find(FRAME_TERMINATOR)
            if idx < 0:
                break
            raw = bytes(self._buffer[:idx])
            del self._buffer[: idx + 1]
            if self._discarding:
                self._discarding = False
                continue
            line = raw.decode("utf-8", errors="replace").strip()
            if line:
                yield line

        if self._discarding:
            self._buffer.clear()
            return
        if len(self._buffer) > self._max_frame_bytes:
            size = len(self._buffer)
            self._buffer.clear()
            self._discarding = True
            raise WmsDecodeError("frame_too_large", details={"bytes": size, "limit": self._max_frame_bytes})


def decode_frame(line: str) -> dict[str, Any]:
    """Parse one line into a message object carrying a ``type``.

    Raises
    ------
    WmsDecodeError
        ``invalid_json`` if the line is not a JSON object, ``missing_type``
        if it has no usable ``type`` field.
    """
    try:
        message = json.loads(line)
    except (json.JSONDecodeError, RecursionError) as exc:
        # RecursionError: nesting too deep for the decoder.
        raise WmsDecodeError("invalid_json") from exc
    if not isinstance(message, dict):
        raise WmsDecodeError("invalid_json")
    msg_type = message.get("type")
    if not isinstance(msg_type, str) or not msg_type.strip():
        raise WmsDecodeError("missing_type")
    return message
