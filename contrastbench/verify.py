"""
Sample-by-sample comparison of two enhancement outputs.

Mismatches are reported as data. Only a difference in dimensions raises,
because the samples cannot be paired up in that case.
"""

import logging
from dataclasses import dataclass, field
from typing import List, NamedTuple

import numpy as np

from . import codec
from .raster import RasterBuffer

logger = logging.getLogger(__name__)

DEFAULT_MISMATCH_LIMIT = 100


class ShapeMismatchError(Exception):
    """Raised when the compared rasters differ in width or height"""
    pass


class Mismatch(NamedTuple):
    index: int
    value_a: int
    value_b: int


@dataclass
class MismatchReport:
    """Outcome of comparing two rasters"""
    width: int
    height: int
    mismatch_count: int
    mismatches: List[Mismatch] = field(default_factory=list)  # first `limit` only

    @property
    def passed(self) -> bool:
        return self.mismatch_count == 0

    def format_lines(self, label_a: str = "ref", label_b: str = "acc") -> List[str]:
        lines = [
            f"Error in [{m.index}]: {label_a}[{m.index}] = {m.value_a} "
            f"{label_b}[{m.index}] = {m.value_b}"
            for m in self.mismatches
        ]
        lines.append(f"Number of errors: {self.mismatch_count}")
        return lines


def compare_rasters(a: RasterBuffer, b: RasterBuffer,
                    limit: int = DEFAULT_MISMATCH_LIMIT) -> MismatchReport:
    if (a.width, a.height) != (b.width, b.height):
        raise ShapeMismatchError(
            f"Cannot compare {a.width}x{a.height} with {b.width}x{b.height}"
        )

    diff = np.flatnonzero(a.samples != b.samples)
    mismatches = [
        Mismatch(int(i), int(a.samples[i]), int(b.samples[i]))
        for i in diff[:max(limit, 0)]
    ]
    return MismatchReport(
        width=a.width,
        height=a.height,
        mismatch_count=int(diff.size),
        mismatches=mismatches,
    )


def compare(path_a: str, path_b: str, limit: int = DEFAULT_MISMATCH_LIMIT,
            max_pixels: int = codec.DEFAULT_MAX_PIXELS) -> MismatchReport:
    """
    Decode two P5 files and compare them sample by sample.

    Args:
        path_a: First output (reference)
        path_b: Second output (accelerated)
        limit: Maximum number of mismatch triples kept in the report

    Returns:
        MismatchReport; mismatch_count == 0 means the files agree

    Raises:
        ShapeMismatchError: If the files have different dimensions
        FileNotFoundError, ImageCodecError: If either file cannot be decoded
    """
    a = codec.decode(path_a, max_pixels=max_pixels)
    b = codec.decode(path_b, max_pixels=max_pixels)
    report = compare_rasters(a, b, limit=limit)
    logger.debug("Compared %s and %s: %d mismatches", path_a, path_b, report.mismatch_count)
    return report
