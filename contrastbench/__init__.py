"""Reference vs accelerated grayscale contrast enhancement bench."""

from .raster import RasterBuffer
from .codec import decode, encode, ImageCodecError, MalformedHeaderError, TruncatedPayloadError
from .enhancers import ContrastEnhancer, EnhancerError, create_enhancer, register_enhancer
from .runner import PipelineRun, run_pipeline
from .verify import MismatchReport, ShapeMismatchError, compare
from .bench import BenchConfig, BenchError, run_bench

__version__ = "0.1.0"
