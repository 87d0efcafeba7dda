from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .backend import DEFAULT_THREADS
from .errors import SegmentationError
from .models import MODEL_REGISTRY
from .pipeline import ForegroundSegmenter, SegmentationConfig
from .utils.weights import DEFAULT_MODELS_DIR


def _existing_file(value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"File does not exist: {path}")
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="segment-foreground",
        description="Produce a foreground alpha matte for an image with MODNet or U2Net.",
    )
    parser.add_argument(
        "-m",
        "--model",
        default="modnet",
        choices=list(MODEL_REGISTRY.keys()),
        help="Model to use for segmentation: modnet (human subjects) or u2net (salient objects).",
    )
    parser.add_argument(
        "-i",
        "--input",
        type=_existing_file,
        required=True,
        help="Path to the input image.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("matte.png"),
        help="Path to the output matte (default: matte.png).",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=DEFAULT_THREADS,
        help="Number of intra-op threads for ONNX Runtime.",
    )
    parser.add_argument(
        "--models-dir",
        type=Path,
        default=DEFAULT_MODELS_DIR,
        help="Directory holding modnet.onnx / u2net.onnx, searched next to the executable and in the working directory.",
    )
    parser.add_argument(
        "--download",
        action="store_true",
        help="Download missing weights when a download source is known.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def run(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = SegmentationConfig(
        model_name=args.model,
        models_dir=args.models_dir,
        threads=max(1, args.threads),
        download=args.download,
    )

    try:
        with ForegroundSegmenter(config) as segmenter:
            segmenter.segment_file(args.input, args.output.expanduser())
    except SegmentationError as exc:
        raise SystemExit(f"error: {exc.message}")

    print(f"Saved {segmenter.spec.display_name} alpha to {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
