#
# src/tconsole/codec.py
#
"""
Versioned, length-prefixed framing for everything that crosses a process
boundary: protocol messages, replies, test results and element caches.

A frame is ``MAGIC | version (1 byte) | body length (4 bytes, big endian)``
followed by a UTF-8 JSON body of the form ``{"kind": ..., "data": ...}``.
"""

import json
import struct
from typing import Any, BinaryIO

import structlog

from tconsole.exceptions import FrameBodyError, PayloadDecodeError
from tconsole.protocol import Message
from tconsole.results import ElementCache, TestResult

log = structlog.get_logger("codec")

MAGIC = b"TCON"
FORMAT_VERSION = 1
HEADER = struct.Struct("!4sBI")

KIND_MESSAGE = "message"
KIND_TEST_RESULT = "test_result"
KIND_ELEMENT_CACHE = "element_cache"
KIND_VALUE = "value"


def _check_plain(value: Any) -> None:
    """
    Rejects values JSON would change on the way through: tuples become lists
    and non-string keys become strings.
    """
    if isinstance(value, tuple):
        raise TypeError("Tuples don't survive encoding; return a list instead")
    if isinstance(value, list):
        for item in value:
            _check_plain(item)
    elif isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"Dictionary keys must be strings, got {type(key).__name__}")
            _check_plain(item)


def _envelope(value: Any) -> dict[str, Any]:
    if isinstance(value, Message):
        return {"kind": KIND_MESSAGE, "data": value.to_dict()}
    if isinstance(value, TestResult):
        return {"kind": KIND_TEST_RESULT, "data": value.to_dict()}
    if isinstance(value, ElementCache):
        return {"kind": KIND_ELEMENT_CACHE, "data": sorted(value.names)}
    _check_plain(value)
    return {"kind": KIND_VALUE, "data": value}


def encode(value: Any) -> bytes:
    """
    Encodes a value into a single frame.

    Raises TypeError/ValueError for values JSON cannot represent exactly.
    """
    body = json.dumps(_envelope(value), allow_nan=False).encode("utf-8")
    return HEADER.pack(MAGIC, FORMAT_VERSION, len(body)) + body


def _unpack_header(header: bytes) -> int:
    if len(header) != HEADER.size:
        raise PayloadDecodeError(f"Truncated frame header ({len(header)} of {HEADER.size} bytes)")
    magic, version, length = HEADER.unpack(header)
    if magic != MAGIC:
        raise PayloadDecodeError(f"Bad frame magic: {magic!r}")
    if version != FORMAT_VERSION:
        raise PayloadDecodeError(f"Unsupported frame version {version} (expected {FORMAT_VERSION})")
    return length


def _decode_body(body: bytes) -> Any:
    try:
        envelope = json.loads(body.decode("utf-8"))
        kind = envelope["kind"]
        data = envelope["data"]
    except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
        raise FrameBodyError(f"Malformed frame body: {e}") from e

    try:
        if kind == KIND_MESSAGE:
            return Message.from_dict(data)
        if kind == KIND_TEST_RESULT:
            return TestResult.from_dict(data)
        if kind == KIND_ELEMENT_CACHE:
            cache = ElementCache()
            cache.merge(str(name) for name in data)
            return cache
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise FrameBodyError(f"Malformed {kind} payload: {e}") from e
    if kind == KIND_VALUE:
        return data
    raise FrameBodyError(f"Unknown payload kind: {kind!r}")


def decode(frame: bytes) -> Any:
    """Decodes exactly one frame. Trailing or missing bytes are an error."""
    length = _unpack_header(frame[: HEADER.size])
    body = frame[HEADER.size :]
    if len(body) != length:
        raise PayloadDecodeError(f"Frame body is {len(body)} bytes, header says {length}")
    return _decode_body(body)


def read_frame(stream: BinaryIO) -> Any:
    """
    Reads and decodes one frame from a blocking stream.

    Raises EOFError on a clean end-of-stream before any header bytes arrive,
    and FrameBodyError when a whole frame arrived but its body is unusable.
    """
    header = stream.read(HEADER.size)
    if not header:
        raise EOFError("End of stream")
    length = _unpack_header(header)
    body = stream.read(length)
    if len(body) != length:
        raise PayloadDecodeError(f"Truncated frame body ({len(body)} of {length} bytes)")
    return _decode_body(body)


# 🔼⚙️
