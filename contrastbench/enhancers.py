"""
Contrast enhancement backends.

Every backend implements the same single operation, RasterBuffer in and a new
RasterBuffer out, so the harness can drive any pair of them. Backends register
themselves by name; adding one is a matter of subclassing ContrastEnhancer and
decorating it with @register_enhancer.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Type

import numpy as np
from PIL import Image, ImageOps

from .equalize import equalize_loop, equalize_vectorized
from .raster import RasterBuffer


class EnhancerError(Exception):
    """Raised when an enhancement backend fails or breaks its contract"""
    pass


class ContrastEnhancer(ABC):
    """Abstract interface for grayscale contrast enhancement"""

    @abstractmethod
    def enhance(self, raster: RasterBuffer) -> RasterBuffer:
        """
        Produce an enhanced copy of the raster.

        Args:
            raster: Input raster, never modified

        Returns:
            A new RasterBuffer that does not share memory with the input

        Raises:
            EnhancerError: If enhancement fails
        """
        pass

    def is_available(self) -> bool:
        """Check if the backend can run in this environment"""
        return True

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier for reports"""
        pass


_REGISTRY: Dict[str, Type[ContrastEnhancer]] = {}


def register_enhancer(key: str) -> Callable[[Type[ContrastEnhancer]], Type[ContrastEnhancer]]:
    """Class decorator adding a backend to the registry under `key`"""
    def decorator(cls: Type[ContrastEnhancer]) -> Type[ContrastEnhancer]:
        if key in _REGISTRY:
            raise ValueError(f"Enhancer already registered: {key}")
        _REGISTRY[key] = cls
        return cls
    return decorator


def available_enhancers() -> List[str]:
    return sorted(_REGISTRY)


def create_enhancer(key: str, **kwargs) -> ContrastEnhancer:
    """
    Factory function for enhancement backends.

    Args:
        key: Registered backend name ("reference", "numpy", "pillow", ...)
        **kwargs: Backend-specific parameters

    Raises:
        ValueError: If no backend is registered under `key`
    """
    try:
        cls = _REGISTRY[key]
    except KeyError:
        raise ValueError(
            f"Unsupported enhancer: {key}. Available: {', '.join(available_enhancers())}"
        )
    return cls(**kwargs)


@register_enhancer("reference")
class ReferenceEqualizer(ContrastEnhancer):
    """
    Histogram equalization in plain Python loops.

    Slow on purpose: it is the ground truth the faster backends are checked
    against.
    """

    def enhance(self, raster: RasterBuffer) -> RasterBuffer:
        out = equalize_loop(raster.tobytes())
        return RasterBuffer(raster.width, raster.height, np.frombuffer(out, dtype=np.uint8))

    @property
    def name(self) -> str:
        return "reference"


@register_enhancer("numpy")
class VectorizedEqualizer(ContrastEnhancer):
    """Histogram equalization with NumPy array ops, bit-exact with the reference"""

    def enhance(self, raster: RasterBuffer) -> RasterBuffer:
        out = equalize_vectorized(raster.samples)
        out.flags.writeable = False
        return RasterBuffer(raster.width, raster.height, out)

    @property
    def name(self) -> str:
        return "numpy"


@register_enhancer("pillow")
class PillowEqualizer(ContrastEnhancer):
    """
    Pillow's ImageOps.equalize.

    Pillow spreads the histogram with a different step formula, so its output
    is not expected to match the reference sample for sample.
    """

    def enhance(self, raster: RasterBuffer) -> RasterBuffer:
        if raster.size == 0:
            return RasterBuffer(raster.width, raster.height, raster.samples.copy())
        im = Image.frombytes("L", (raster.width, raster.height), raster.tobytes())
        eq = ImageOps.equalize(im)
        return RasterBuffer.from_array(np.array(eq, dtype=np.uint8))

    @property
    def name(self) -> str:
        return "pillow"
