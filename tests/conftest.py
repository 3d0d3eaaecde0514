"""Pytest configuration and shared fixtures for contrast bench tests"""

import tempfile
import shutil
from pathlib import Path
from typing import Callable, Generator

import pytest
import numpy as np

from contrastbench import codec
from contrastbench.raster import RasterBuffer


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's CONTRASTBENCH_* settings out of the tests"""
    for name in ("CONTRASTBENCH_VERIFY", "CONTRASTBENCH_MAX_PIXELS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Temporary directory for test outputs, cleaned up after test"""
    temp_path = Path(tempfile.mkdtemp(prefix="contrastbench_test_"))
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path)


@pytest.fixture
def write_pgm(temp_dir: Path) -> Callable[[str, RasterBuffer], Path]:
    """Encode a raster into the temp directory and return its path"""
    def _write(name: str, raster: RasterBuffer) -> Path:
        path = temp_dir / name
        codec.encode(raster, path)
        return path
    return _write


@pytest.fixture
def low_contrast_raster() -> RasterBuffer:
    """Synthetic 64x48 image squeezed into the 100..140 intensity band"""
    width, height = 64, 48
    yy, xx = np.mgrid[0:height, 0:width]
    # Horizontal ramp plus a brighter blob, like a washed-out photo
    ramp = 100 + 30 * (xx / (width - 1))
    blob = 10 * np.exp(-(((xx - 40) / 8.0) ** 2 + ((yy - 16) / 8.0) ** 2))
    image = np.clip(ramp + blob, 0, 255).astype(np.uint8)
    return RasterBuffer.from_array(image)


@pytest.fixture
def random_raster() -> RasterBuffer:
    rng = np.random.default_rng(1234)
    return RasterBuffer(37, 29, rng.integers(0, 256, 37 * 29, dtype=np.uint8))


@pytest.fixture
def sample_pgm(write_pgm, low_contrast_raster) -> Path:
    """Low-contrast input image written as P5"""
    return write_pgm("input.pgm", low_contrast_raster)
