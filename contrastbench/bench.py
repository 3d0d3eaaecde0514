"""
Dual-pipeline contrast enhancement bench.

Runs a reference and an accelerated backend over the same grayscale input,
one after the other, writes both outputs, and optionally checks that the two
outputs agree sample for sample.
"""

import json
import os
from dataclasses import dataclass, asdict
from typing import Optional

import numpy as np
from PIL import Image

from . import codec
from .enhancers import ContrastEnhancer, create_enhancer
from .runner import PipelineRun, run_pipeline
from .verify import DEFAULT_MISMATCH_LIMIT, MismatchReport, compare


@dataclass
class BenchConfig:
    """Configuration for a bench run"""
    reference: str = "reference"
    accelerated: str = "numpy"

    # Verification
    verify: bool = False
    mismatch_limit: int = DEFAULT_MISMATCH_LIMIT

    # Input limits
    max_pixels: int = codec.DEFAULT_MAX_PIXELS

    # Behavior
    strict_mode: bool = False  # failed verification is fatal
    save_intermediate: bool = False  # PNG previews, metadata JSON (debug only)


@dataclass
class BenchOutputs:
    """Results from a bench run"""
    reference: PipelineRun
    accelerated: PipelineRun
    report: Optional[MismatchReport]  # None unless verification ran

    # Debug outputs (optional)
    meta_path: Optional[str] = None


class BenchError(Exception):
    """Raised when the bench is misconfigured"""
    pass


def _resolve_enhancer(key: str) -> ContrastEnhancer:
    try:
        enhancer = create_enhancer(key)
    except ValueError as e:
        raise BenchError(str(e))
    if not enhancer.is_available():
        raise BenchError(f"Enhancer not available: {enhancer.name}")
    return enhancer


def _check_paths(input_path: str, reference_out: str, accelerated_out: str) -> None:
    """Reject path layouts where one stage would overwrite another's file"""
    def canon(path):
        return os.path.normcase(os.path.realpath(path))

    src, ref, acc = canon(input_path), canon(reference_out), canon(accelerated_out)
    if ref == acc:
        raise BenchError(f"Reference and accelerated outputs are the same file: {reference_out}")
    if src in (ref, acc):
        clash = reference_out if src == ref else accelerated_out
        raise BenchError(f"Output would overwrite the input image: {clash}")


def _run_stage(enhancer: ContrastEnhancer, input_path: str, out_path: str,
               config: BenchConfig) -> PipelineRun:
    # Each stage decodes its own copy of the input and drops it on return
    raster = codec.decode(input_path, max_pixels=config.max_pixels)
    print(f"Image size: {raster.width} x {raster.height}")
    return run_pipeline(enhancer, raster, out_path)


def _save_png_gray(arr8: np.ndarray, path: str) -> None:
    Image.fromarray(np.ascontiguousarray(arr8, dtype=np.uint8)).save(path, format='PNG', optimize=True)


def _save_debug_artifacts(input_path: str, outputs: BenchOutputs, config: BenchConfig) -> str:
    """Write PNG previews and a metadata JSON next to the accelerated output"""
    base_dir = os.path.dirname(os.path.abspath(outputs.accelerated.output_path))
    stem = os.path.splitext(os.path.basename(input_path))[0]

    ref = codec.decode(outputs.reference.output_path, max_pixels=config.max_pixels)
    acc = codec.decode(outputs.accelerated.output_path, max_pixels=config.max_pixels)

    previews = {}
    if ref.size and acc.size:
        previews['reference'] = os.path.join(base_dir, f"{stem}_reference.png")
        previews['accelerated'] = os.path.join(base_dir, f"{stem}_accelerated.png")
        _save_png_gray(ref.as_array(), previews['reference'])
        _save_png_gray(acc.as_array(), previews['accelerated'])

        if outputs.report is not None and ref.shape == acc.shape:
            diff_mask = np.where(ref.as_array() != acc.as_array(), 255, 0).astype(np.uint8)
            previews['diff'] = os.path.join(base_dir, f"{stem}_diff.png")
            _save_png_gray(diff_mask, previews['diff'])
    else:
        print("⚠️  Empty image, skipping PNG previews")

    metadata = {
        'input': os.path.abspath(input_path),
        'dimensions': {'width': ref.width, 'height': ref.height},
        'runs': {
            'reference': asdict(outputs.reference),
            'accelerated': asdict(outputs.accelerated),
        },
        'verification': None if outputs.report is None else {
            'mismatch_count': outputs.report.mismatch_count,
            'passed': outputs.report.passed,
            'first_mismatches': [m._asdict() for m in outputs.report.mismatches],
        },
        'previews': {k: os.path.abspath(v) for k, v in previews.items()},
    }

    meta_path = os.path.join(base_dir, f"{stem}_meta.json")
    with open(meta_path, 'w') as f:
        json.dump(metadata, f, indent=2)
    return meta_path


def run_bench(
    input_path: str,
    reference_out: str,
    accelerated_out: str,
    config: Optional[BenchConfig] = None
) -> BenchOutputs:
    """
    Execute both enhancement pipelines and the optional verification pass.

    Args:
        input_path: P5 grayscale input
        reference_out: Output path for the reference backend
        accelerated_out: Output path for the accelerated backend
        config: Bench configuration

    Returns:
        BenchOutputs with both run timings and the mismatch report, if any

    Raises:
        BenchError: If a configured backend is unknown or unavailable, or if
            two of the three paths name the same file
        FileNotFoundError: If the input image does not exist
        ImageCodecError: If the input or an output cannot be decoded
        EnhancerError: If a backend fails
        ShapeMismatchError: If verification finds outputs of different sizes
        OSError: If an output cannot be written
    """
    config = config or BenchConfig()
    _check_paths(input_path, reference_out, accelerated_out)

    reference = _resolve_enhancer(config.reference)
    accelerated = _resolve_enhancer(config.accelerated)
    steps = 3 if config.verify else 2

    print(f"[1/{steps}] Running contrast enhancement for gray-scale images ({reference.name})...")
    ref_run = _run_stage(reference, input_path, reference_out, config)

    print(f"[2/{steps}] Running contrast enhancement for gray-scale images ({accelerated.name})...")
    acc_run = _run_stage(accelerated, input_path, accelerated_out, config)

    report = None
    if config.verify:
        print(f"[3/{steps}] Verifying outputs...")
        report = compare(reference_out, accelerated_out,
                         limit=config.mismatch_limit, max_pixels=config.max_pixels)

    outputs = BenchOutputs(reference=ref_run, accelerated=acc_run, report=report)

    if config.save_intermediate:
        outputs.meta_path = _save_debug_artifacts(input_path, outputs, config)

    return outputs
