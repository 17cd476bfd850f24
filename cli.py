"""
Label Cropper CLI

Crop the shipping label out of a PDF or photo and write it as a 4x6 PNG.
"""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from errors import LabelCropError
from label_processor import LabelProcessor, encode_png, rotate_label
from raster_source import mime_type_for
from schemas import ProcessingSettings

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    defaults = ProcessingSettings()
    parser = argparse.ArgumentParser(
        prog="labelcrop",
        description="Detect, crop and resize a shipping label for thermal printing.",
    )
    parser.add_argument("input", help="PDF, PNG or JPG file")
    parser.add_argument("-o", "--output", help="Output PNG path (default: <input>_label.png)")
    parser.add_argument("--width", type=int, default=defaults.target_width)
    parser.add_argument("--height", type=int, default=defaults.target_height)
    parser.add_argument("--min-area", type=float, default=defaults.min_area_ratio,
                        help="Smallest label area as a fraction of the page")
    parser.add_argument("--max-area", type=float, default=defaults.max_area_ratio,
                        help="Largest label area as a fraction of the page")
    parser.add_argument("--scale", type=float, default=defaults.pdf_scale,
                        help="PDF render scale (3.0 is about 216 DPI)")
    parser.add_argument("--rotate", choices=["left", "right"],
                        help="Rotate the finished label once more")
    parser.add_argument("--preview", help="Also write the detection preview to this path")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--debug", action="store_true")
    return parser


def default_output_path(input_path: str) -> Path:
    path = Path(input_path)
    return path.with_name(f"{path.stem}_label.png")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.debug)

    try:
        settings = ProcessingSettings(
            target_width=args.width,
            target_height=args.height,
            min_area_ratio=args.min_area,
            max_area_ratio=args.max_area,
            pdf_scale=args.scale,
        )
    except ValidationError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 2

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"File not found: {input_path}", file=sys.stderr)
        return 2

    processor = LabelProcessor(settings=settings)
    try:
        result = processor.process_document(
            input_path.read_bytes(), mime_type_for(input_path), with_preview=bool(args.preview)
        )
        label = result.image
        if args.rotate:
            label = rotate_label(label, args.rotate, processor.engine)
        output_path = Path(args.output) if args.output else default_output_path(args.input)
        output_path.write_bytes(encode_png(label, processor.engine))
        if args.preview:
            Path(args.preview).write_bytes(encode_png(result.preview, processor.engine))
    except LabelCropError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    x, y, w, h = result.rect
    print(f"Label {w}x{h}px at ({x}, {y}) -> {output_path}")
    if result.used_fallback:
        print("No distinct label found; used the whole page.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
