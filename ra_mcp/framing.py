"""Content-Length framing of JSON-RPC messages as used by language servers."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

HEADER_PREFIX = b"Content-Length:"


class FramingError(Exception):
    """A framed message could not be read or decoded."""


def encode_message(message: Any) -> bytes:
    """Serialise a message to compact JSON behind a Content-Length header."""
    content = json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )
    header = f"Content-Length: {len(content)}\r\n\r\n".encode("ascii")
    return header + content


async def _read_content_length(reader: asyncio.StreamReader) -> int:
    """Read header lines up to the blank line that ends a header block."""
    length: int | None = None
    while True:
        line = await reader.readline()
        if not line:
            raise FramingError("stream closed while reading message headers")
        stripped = line.strip()
        if not stripped:
            if length is not None:
                return length
            continue
        if stripped.startswith(HEADER_PREFIX):
            value = stripped[len(HEADER_PREFIX):].strip()
            try:
                length = int(value)
            except ValueError as exc:
                raise FramingError(f"invalid Content-Length: {value!r}") from exc
            if length < 0:
                raise FramingError(f"invalid Content-Length: {length}")


async def read_message(reader: asyncio.StreamReader) -> Any:
    """Read one framed message from a stream and return its decoded JSON."""
    length = await _read_content_length(reader)
    try:
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError as exc:
        raise FramingError(
            f"stream closed after {len(exc.partial)} of {length} body bytes"
        ) from exc
    try:
        message = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FramingError(f"message body is not valid JSON: {exc}") from exc
    logger.debug("Received LSP message: %s", message)
    return message