"""
Grayscale raster data model.

A RasterBuffer is a single-channel 8-bit image stored as a flat, row-major,
read-only NumPy array. Buffers produced by the codec or by an enhancer are
never written to afterwards, so two buffers can only share memory if an
enhancer hands its input straight back.
"""

from typing import Optional

import numpy as np


def _is_sealed(arr: np.ndarray) -> bool:
    """True when no other object can write to the array's memory"""
    if arr.flags.writeable or not arr.flags.c_contiguous:
        return False
    # Read-only owner, or a view over immutable bytes (np.frombuffer)
    return arr.base is None or isinstance(arr.base, bytes)


class RasterBuffer:
    """Single-channel 8-bit grayscale raster"""

    __slots__ = ("width", "height", "samples")

    def __init__(self, width: int, height: int, samples: Optional[np.ndarray] = None):
        if width < 0 or height < 0:
            raise ValueError(f"Raster dimensions must be non-negative, got {width}x{height}")

        if samples is None:
            samples = np.zeros(width * height, dtype=np.uint8)
        elif not isinstance(samples, np.ndarray):
            samples = np.frombuffer(bytes(samples), dtype=np.uint8)

        if samples.dtype != np.uint8:
            raise ValueError(f"Raster samples must be uint8, got {samples.dtype}")
        if samples.ndim != 1:
            samples = samples.reshape(-1)
        if samples.size != width * height:
            raise ValueError(
                f"Expected {width * height} samples for {width}x{height}, got {samples.size}"
            )

        # Take a private copy of anything the caller could still write through
        if not _is_sealed(samples):
            samples = np.array(samples, dtype=np.uint8, copy=True)
            samples.flags.writeable = False

        self.width = int(width)
        self.height = int(height)
        self.samples = samples

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RasterBuffer":
        """Build a raster from a 2-D (height, width) uint8 array"""
        if arr.ndim != 2:
            raise ValueError(f"Expected 2D grayscale array, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            raise ValueError(f"Raster samples must be uint8, got {arr.dtype}")
        h, w = arr.shape
        return cls(w, h, arr.reshape(-1))

    def as_array(self) -> np.ndarray:
        """Read-only (height, width) view of the samples"""
        return self.samples.reshape(self.height, self.width)

    def tobytes(self) -> bytes:
        return self.samples.tobytes()

    @property
    def size(self) -> int:
        return self.width * self.height

    @property
    def shape(self):
        return (self.height, self.width)

    def shares_memory(self, other: "RasterBuffer") -> bool:
        return bool(np.shares_memory(self.samples, other.samples))

    def __eq__(self, other):
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.samples, other.samples)
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"RasterBuffer(width={self.width}, height={self.height})"
