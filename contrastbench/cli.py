"""
CLI for the dual-pipeline contrast enhancement bench.

Usage: contrastbench <input.pgm> <reference-out.pgm> <accelerated-out.pgm>
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import codec
from .bench import BenchConfig, BenchError, run_bench
from .codec import ImageCodecError
from .enhancers import EnhancerError, available_enhancers, create_enhancer
from .verify import ShapeMismatchError

USAGE_HINT = "Run with input file name and two output file names as arguments"


class UsageError(Exception):
    """Raised when the command line is malformed"""
    pass


class _BenchArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise UsageError(f"{name} must be an integer, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = _BenchArgumentParser(
        prog='contrastbench',
        description='Reference vs accelerated grayscale contrast enhancement bench',
    )

    # Core arguments
    parser.add_argument('paths', nargs='*', metavar='PATH',
                        help='Input PGM, reference output PGM, accelerated output PGM')

    # Backends
    parser.add_argument('--reference', default='reference', help='Reference enhancer name')
    parser.add_argument('--accelerated', default='numpy', help='Accelerated enhancer name')

    # Verification
    parser.add_argument('--verify', action='store_true',
                        help='Compare both outputs sample by sample (or CONTRASTBENCH_VERIFY=1)')
    parser.add_argument('--mismatch-limit', type=int, default=100,
                        help='Number of mismatching samples to list')

    # Processing
    parser.add_argument('--max-pixels', type=int, default=None,
                        help='Largest width*height accepted from an input header')

    # Behavior
    parser.add_argument('--strict', action='store_true', help='Exit non-zero when verification fails')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--debug', action='store_true', help='Save debug files (PNG previews, metadata JSON)')
    parser.add_argument('--list-enhancers', action='store_true', help='List enhancement backends and exit')
    return parser


def _list_enhancers() -> int:
    for key in available_enhancers():
        enhancer = create_enhancer(key)
        status = "" if enhancer.is_available() else " [unavailable]"
        print(f"{key}{status}")
    return 0


def _report_verification(outputs, config: BenchConfig) -> int:
    report = outputs.report
    for line in report.format_lines(config.reference, config.accelerated):
        print(line)
    if report.passed:
        print("✅ Outputs match")
        return 0
    print(f"❌ Outputs differ in {report.mismatch_count} samples", file=sys.stderr)
    return 1 if config.strict_mode else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_intermixed_args(argv)
        if not args.list_enhancers and len(args.paths) != 3:
            raise UsageError(USAGE_HINT)
        max_pixels = args.max_pixels
        if max_pixels is None:
            max_pixels = _env_int('CONTRASTBENCH_MAX_PIXELS', codec.DEFAULT_MAX_PIXELS)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.list_enhancers:
        return _list_enhancers()

    config = BenchConfig(
        reference=args.reference,
        accelerated=args.accelerated,
        verify=args.verify or _env_flag('CONTRASTBENCH_VERIFY'),
        mismatch_limit=args.mismatch_limit,
        max_pixels=max_pixels,
        strict_mode=args.strict,
        save_intermediate=args.debug,
    )
    input_path, reference_out, accelerated_out = args.paths

    if args.verbose:
        print(f"Reference: {config.reference}, accelerated: {config.accelerated}")
        print(f"Verification: {'on' if config.verify else 'off'}")

    try:
        outputs = run_bench(input_path, reference_out, accelerated_out, config)
    except ShapeMismatchError as e:
        print(f"❌ Verification failed: {e}", file=sys.stderr)
        return 1 if config.strict_mode else 0
    except (BenchError, ImageCodecError, EnhancerError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except OSError as e:
        if isinstance(e, FileNotFoundError) and e.filename == input_path:
            print(f"❌ Input file not found: {input_path}", file=sys.stderr)
        else:
            print(f"❌ I/O error: {e}", file=sys.stderr)
        return 1

    print(f"📄 Reference output: {outputs.reference.output_path}")
    print(f"📄 Accelerated output: {outputs.accelerated.output_path}")
    if outputs.meta_path:
        print(f"🐛 Debug metadata: {outputs.meta_path}")

    if outputs.report is not None:
        return _report_verification(outputs, config)
    return 0


if __name__ == '__main__':
    sys.exit(main())
