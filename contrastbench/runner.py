"""Single enhancement run: invoke, time, persist."""

import logging
import os
import time
from dataclasses import dataclass

from . import codec
from .enhancers import ContrastEnhancer, EnhancerError
from .raster import RasterBuffer

logger = logging.getLogger(__name__)


@dataclass
class PipelineRun:
    """Result of one enhancement run"""
    enhancer_name: str
    output_path: str
    elapsed_s: float  # enhance() call only, I/O excluded
    width: int
    height: int


def _check_output(enhancer: ContrastEnhancer, raster: RasterBuffer, result) -> None:
    if not isinstance(result, RasterBuffer):
        raise EnhancerError(
            f"{enhancer.name} returned {type(result).__name__}, expected RasterBuffer"
        )
    if result is raster or result.shares_memory(raster):
        raise EnhancerError(f"{enhancer.name} returned a buffer aliasing its input")


def run_pipeline(enhancer: ContrastEnhancer, raster: RasterBuffer, out_path: str) -> PipelineRun:
    """
    Run one enhancer over a raster and write the result.

    Args:
        enhancer: Backend to invoke exactly once
        raster: Input raster (not modified)
        out_path: Destination P5 file, overwritten if present

    Returns:
        PipelineRun with the measured enhancement time

    Raises:
        EnhancerError: If the backend fails or breaks its contract
        OSError: If the output cannot be written
    """
    print(f"Starting {enhancer.name} processing...")

    start = time.perf_counter()
    try:
        result = enhancer.enhance(raster)
    except EnhancerError:
        raise
    except Exception as e:
        raise EnhancerError(f"{enhancer.name} enhancement failed: {e}")
    elapsed = time.perf_counter() - start

    _check_output(enhancer, raster, result)
    print(f"{enhancer.name} time: {elapsed:f}")

    codec.encode(result, out_path)
    logger.debug("%s wrote %s", enhancer.name, os.path.abspath(out_path))

    return PipelineRun(
        enhancer_name=enhancer.name,
        output_path=str(out_path),
        elapsed_s=elapsed,
        width=result.width,
        height=result.height,
    )
