"""Global histogram equalization kernels for 8-bit samples."""

from typing import List, Optional, Sequence

import numpy as np

NUM_BINS = 256


def histogram(samples: bytes) -> List[int]:
    hist = [0] * NUM_BINS
    for value in samples:
        hist[value] += 1
    return hist


def equalization_lut(hist: Sequence[int], num_samples: int) -> Optional[List[int]]:
    """
    Map each intensity to its equalized value.

    The lowest occupied bin's count is subtracted from the running CDF so the
    darkest present intensity maps to 0. Returns None when the image has no
    spread to redistribute (empty or a single intensity).
    """
    cdf_min = next((count for count in hist if count), 0)
    denom = num_samples - cdf_min
    if denom <= 0:
        return None

    lut = []
    cdf = 0
    for count in hist:
        cdf += count
        value = int((cdf - cdf_min) * 255 / denom + 0.5)
        lut.append(min(max(value, 0), 255))
    return lut


def equalize_loop(samples: bytes) -> bytes:
    hist = histogram(samples)
    lut = equalization_lut(hist, len(samples))
    if lut is None:
        return bytes(samples)

    out = bytearray(len(samples))
    for i, value in enumerate(samples):
        out[i] = lut[value]
    return bytes(out)


def equalize_vectorized(samples: np.ndarray) -> np.ndarray:
    """NumPy equivalent of equalize_loop, bit-exact with it"""
    n = samples.size
    hist = np.bincount(samples, minlength=NUM_BINS).astype(np.int64)
    occupied = np.flatnonzero(hist)
    cdf_min = int(hist[occupied[0]]) if occupied.size else 0
    denom = n - cdf_min
    if denom <= 0:
        return samples.copy()

    cdf = np.cumsum(hist)
    # Same float64 ops and truncation as the scalar path
    lut = ((cdf - cdf_min) * 255 / denom + 0.5).astype(np.int64)
    lut = np.clip(lut, 0, 255).astype(np.uint8)
    return lut[samples]
