"""Reference audio encoding into data URIs."""

from __future__ import annotations

import base64
import binascii
import mimetypes
import os
from pathlib import Path
import time
from typing import Union

import aiofiles

from voiceclone.core.config import settings
from voiceclone.core.exceptions import (
    EncodingFailedError,
    EncodingTooLargeError,
    handle_encoding_error,
)
from voiceclone.core.models import EncodedAudio
from voiceclone.utils.logger import get_logger, log_encoding_metrics

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

AudioSource = Union[str, os.PathLike, bytes, bytearray]


def guess_mime_type(filename: str | None) -> str:
    """Guess the audio MIME type from a file name."""
    if not filename:
        return DEFAULT_MIME_TYPE
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or DEFAULT_MIME_TYPE


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Embed raw bytes in a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a base64 data URI into its MIME type and raw bytes.

    This is the backend-side inverse of :func:`encode_audio`.

    Raises:
        ValueError: If the URI is not a base64 data URI
    """
    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("Not a data URI")
    header, payload = uri[len("data:"):].split(",", 1)
    if not header.endswith(";base64"):
        raise ValueError("Data URI is not base64 encoded")
    mime_type = header[: -len(";base64")] or DEFAULT_MIME_TYPE
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def _check_size(size: int, limit: int, source: str) -> None:
    if size > limit:
        raise EncodingTooLargeError(
            f"Reference audio is {size} bytes, limit is {limit}",
            source=source,
            size_bytes=size,
            limit_bytes=limit,
        )
    if size == 0:
        raise EncodingFailedError(
            "Reference audio is empty", source=source, size_bytes=0
        )


async def _read_file(path: Path, limit: int) -> bytes:
    source = str(path)
    try:
        size = path.stat().st_size
    except OSError as e:
        handle_encoding_error(e, source)
    _check_size(size, limit, source)

    try:
        async with aiofiles.open(path, "rb") as f:
            # Read one byte past the limit to catch files that grew after stat
            data = await f.read(limit + 1)
    except OSError as e:
        handle_encoding_error(e, source)
    return data


async def encode_audio(
    source: AudioSource,
    *,
    filename: str | None = None,
    max_bytes: int | None = None,
) -> EncodedAudio:
    """Encode reference audio as a self-contained data URI.

    Encoding is all-or-nothing: either the complete payload is returned or an
    ``EncodingError`` is raised.

    Args:
        source: Path to the audio file, or its raw bytes
        filename: Name used for MIME detection when ``source`` is bytes
        max_bytes: Size limit, defaults to ``settings.max_audio_bytes``

    Returns:
        The encoded audio

    Raises:
        EncodingTooLargeError: If the audio exceeds the size limit
        EncodingFailedError: If the audio cannot be read or is empty
    """
    limit = max_bytes if max_bytes is not None else settings.max_audio_bytes
    start_time = time.time()

    if isinstance(source, (bytes, bytearray)):
        label = filename or "<memory>"
        data = bytes(source)
    else:
        path = Path(source)
        filename = filename or path.name
        label = str(path)
        data = await _read_file(path, limit)

    _check_size(len(data), limit, label)

    encoded = EncodedAudio(
        data_uri=to_data_uri(data, guess_mime_type(filename)),
        mime_type=guess_mime_type(filename),
        size_bytes=len(data),
        filename=filename,
    )

    log_encoding_metrics(label, encoded.size_bytes, (time.time() - start_time) * 1000)
    return encoded
