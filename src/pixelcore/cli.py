"""
Pixelcore CLI
=============

Decode image files with OpenCV, run one engine, write the result.

Usage:
    pixelcore tonal -i photo.jpg -o out.png --brightness 15 --vibrance 30
    pixelcore artistic -i a.jpg b.jpg -o out_dir/ --filter oil_painting --intensity 40
    pixelcore grade -i photo.jpg -o out.png --grading '{"gain": [1.1, 1.0, 0.9]}'
    pixelcore lens -i photo.jpg -o out.png --distortion 30 --vignetting 20
    pixelcore edges -i photo.jpg -o edges.png
    pixelcore analyze -i photo.jpg [-o report.json]

Several inputs run through the batch runner and require -o to be a directory.
"""

import argparse
import functools
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from pixelcore import config
from pixelcore.analysis import analyze_colors
from pixelcore.artistic import ArtisticFilter, apply_artistic, detect_edges
from pixelcore.batch import run_batch
from pixelcore.grading import ColorGrading, apply_grading
from pixelcore.image_io import read_image, write_image
from pixelcore.lens import LensCorrection, PerspectiveCorrection, apply_lens_correction
from pixelcore.tonal import TonalOptions, apply_tonal

logger = logging.getLogger("pixelcore.cli")

TONAL_FLAGS = ("brightness", "contrast", "saturation", "hue", "gamma", "exposure",
               "highlights", "shadows", "whites", "blacks", "clarity", "vibrance",
               "warmth", "tint")


def _json_arg(value: str) -> dict:
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"not valid JSON: {e}")
    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pixelcore", description="Pixel-level image processing")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    def image_command(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--input", "-i", nargs="+", required=True, help="Input image(s)")
        p.add_argument("--output", "-o", required=True, help="Output file, or directory for several inputs")
        p.add_argument("--workers", type=int, default=None, help="Batch worker limit")
        return p

    tonal = image_command("tonal", "Tonal slider adjustments")
    tonal.add_argument("--options", type=_json_arg, default={}, help="TonalOptions as JSON")
    for flag in TONAL_FLAGS:
        tonal.add_argument(f"--{flag}", type=float, default=None)
    tonal.add_argument("--seed", type=int, default=None, help="Film grain seed")

    artistic = image_command("artistic", "Artistic effect")
    artistic.add_argument("--filter", "-f", required=True, help="Effect type, e.g. oil_painting")
    artistic.add_argument("--intensity", type=float, default=50.0)
    artistic.add_argument("--params", type=_json_arg, default={}, help="Effect parameters as JSON")

    grade = image_command("grade", "Colour grading")
    grade.add_argument("--grading", type=_json_arg, required=True, help="ColorGrading as JSON")

    lens = image_command("lens", "Lens corrections")
    lens.add_argument("--distortion", type=float, default=0.0)
    lens.add_argument("--vignetting", type=float, default=0.0)
    lens.add_argument("--ca", type=float, default=0.0, help="Chromatic aberration 0-100")
    lens.add_argument("--horizontal", type=float, default=0.0)
    lens.add_argument("--vertical", type=float, default=0.0)
    lens.add_argument("--rotation", type=float, default=0.0)

    image_command("edges", "Sobel edge map")

    analyze = sub.add_parser("analyze", help="Colour analysis report (JSON)")
    analyze.add_argument("--input", "-i", required=True, help="Input image")
    analyze.add_argument("--output", "-o", default=None, help="JSON file (default: stdout)")
    analyze.add_argument("--palette-size", type=int, default=config.PALETTE_SIZE)

    return parser


def _operation(args):
    """Engine call for an image sub-command, bound to its parsed options."""
    if args.command == "tonal":
        options = dict(args.options)
        options.update({f: getattr(args, f) for f in TONAL_FLAGS if getattr(args, f) is not None})
        tonal_options = TonalOptions.from_dict(options)
        if args.seed is None:
            return functools.partial(apply_tonal, options=tonal_options)
        # One generator per image; a Generator must not be shared across threads
        return lambda buffer: apply_tonal(buffer, tonal_options, rng=np.random.default_rng(args.seed))

    if args.command == "artistic":
        artistic_filter = ArtisticFilter(type=args.filter, intensity=args.intensity, parameters=args.params)
        return functools.partial(apply_artistic, artistic_filter=artistic_filter)

    if args.command == "grade":
        return functools.partial(apply_grading, grading=ColorGrading.from_dict(args.grading))

    if args.command == "lens":
        correction = LensCorrection(
            distortion=args.distortion,
            vignetting=args.vignetting,
            chromatic_aberration=args.ca,
            perspective=PerspectiveCorrection(args.horizontal, args.vertical, args.rotation),
        )
        return functools.partial(apply_lens_correction, correction=correction)

    return detect_edges


def _output_paths(inputs: List[str], output: str) -> List[Path]:
    out = Path(output)
    if len(inputs) == 1 and not out.is_dir():
        return [out]
    out.mkdir(parents=True, exist_ok=True)
    return [out / (Path(p).stem + ".png") for p in inputs]


def run_images(args) -> int:
    operation = _operation(args)
    buffers = [read_image(path) for path in args.input]
    targets = _output_paths(args.input, args.output)

    results = run_batch(buffers, operation, max_workers=args.workers)
    failures = 0
    for result, source, target in zip(results, args.input, targets):
        if not result.ok:
            failures += 1
            logger.error("%s: %s", source, result.error)
            continue
        write_image(target, result.value)
        print(f"{source} -> {target}")
    return 1 if failures else 0


def run_analyze(args) -> int:
    report = analyze_colors(read_image(args.input), palette_size=args.palette_size).to_dict()
    text = json.dumps(report, indent=2)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Report written to {args.output}")
    else:
        print(text)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "analyze":
            return run_analyze(args)
        return run_images(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
