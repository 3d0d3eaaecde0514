"""
Binary PGM (P5) codec for RasterBuffer.

File layout:
1. ASCII header of four whitespace-separated tokens: marker, width, height, maxval
2. A single whitespace byte ending the header
3. width*height raw 8-bit samples, row-major

Comments inside the header are not supported. Header values are validated
before anything is allocated, and a payload shorter than width*height is an
error rather than being padded.
"""

import io
import logging
import os
from typing import BinaryIO, Tuple, Union

import numpy as np

from .raster import RasterBuffer

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

MAGIC = b"P5"
MAX_SAMPLE_VALUE = 255
MAX_DIMENSION = 65535
DEFAULT_MAX_PIXELS = 1 << 28  # 256 MiB of samples
MAX_TOKEN_LENGTH = 255

_WHITESPACE = b" \t\n\r\x0b\x0c"


class ImageCodecError(Exception):
    """Raised when a raster file cannot be decoded"""
    pass


class MalformedHeaderError(ImageCodecError):
    """Raised when the header is missing, unparsable or out of bounds"""
    pass


class TruncatedPayloadError(ImageCodecError):
    """Raised when the file holds fewer than width*height samples"""
    pass


def _read_token(stream: BinaryIO) -> Tuple[bytes, bytes]:
    """Read one header token, returning it with the byte that ended it"""
    ch = stream.read(1)
    while ch and ch in _WHITESPACE:
        ch = stream.read(1)

    token = bytearray()
    while ch and ch not in _WHITESPACE:
        token += ch
        if len(token) > MAX_TOKEN_LENGTH:
            raise MalformedHeaderError(f"Header token longer than {MAX_TOKEN_LENGTH} bytes")
        ch = stream.read(1)

    if not token:
        raise MalformedHeaderError("Unexpected end of file in header")
    return bytes(token), ch


def _parse_int(token: bytes, field: str) -> int:
    digits = token[1:] if token.startswith(b"-") else token
    if not digits.isdigit():
        raise MalformedHeaderError(f"Invalid {field} in header: {token!r}")
    return int(token)


def _read_header(stream: BinaryIO, max_pixels: int) -> Tuple[int, int]:
    marker, _ = _read_token(stream)
    if marker != MAGIC:
        raise MalformedHeaderError(f"Unsupported format marker {marker!r}, expected {MAGIC!r}")

    width = _parse_int(_read_token(stream)[0], "width")
    height = _parse_int(_read_token(stream)[0], "height")
    maxval = _parse_int(_read_token(stream)[0], "maximum sample value")

    if width < 0 or height < 0:
        raise MalformedHeaderError(f"Negative image size: {width} x {height}")
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise MalformedHeaderError(
            f"Image size {width} x {height} exceeds {MAX_DIMENSION} per side"
        )
    if width * height > max_pixels:
        raise MalformedHeaderError(
            f"Image size {width} x {height} exceeds limit of {max_pixels} samples"
        )
    if not 1 <= maxval <= MAX_SAMPLE_VALUE:
        raise MalformedHeaderError(f"Maximum sample value must be 1..255, got {maxval}")

    return width, height


def _read_raster(stream: BinaryIO, max_pixels: int) -> RasterBuffer:
    width, height = _read_header(stream, max_pixels)
    expected = width * height

    payload = stream.read(expected)
    if len(payload) < expected:
        raise TruncatedPayloadError(
            f"Expected {expected} sample bytes for {width} x {height}, got {len(payload)}"
        )

    return RasterBuffer(width, height, np.frombuffer(payload, dtype=np.uint8))


def decode(path: PathLike, max_pixels: int = DEFAULT_MAX_PIXELS) -> RasterBuffer:
    """
    Read a P5 raster from disk.

    Args:
        path: Source file path
        max_pixels: Upper bound on width*height accepted from the header

    Returns:
        RasterBuffer holding the decoded samples

    Raises:
        FileNotFoundError: If the file does not exist
        MalformedHeaderError: If the header is invalid or out of bounds
        TruncatedPayloadError: If the payload is shorter than the header promises
    """
    with open(path, "rb") as f:
        raster = _read_raster(f, max_pixels)
    logger.debug("Decoded %s: %d x %d", path, raster.width, raster.height)
    return raster


def decode_bytes(data: bytes, max_pixels: int = DEFAULT_MAX_PIXELS) -> RasterBuffer:
    """Decode an in-memory P5 image"""
    return _read_raster(io.BytesIO(data), max_pixels)


def header_bytes(width: int, height: int) -> bytes:
    return b"%s\n%d %d\n%d\n" % (MAGIC, width, height, MAX_SAMPLE_VALUE)


def encode_bytes(raster: RasterBuffer) -> bytes:
    """Serialize a raster to P5 bytes"""
    return header_bytes(raster.width, raster.height) + raster.tobytes()


def encode(raster: RasterBuffer, path: PathLike) -> None:
    """
    Write a raster to disk, replacing any existing file.

    Raises:
        OSError: If the destination cannot be opened for writing
    """
    with open(path, "wb") as f:
        f.write(header_bytes(raster.width, raster.height))
        f.write(raster.samples.tobytes())
    logger.debug("Encoded %s: %d x %d", path, raster.width, raster.height)
