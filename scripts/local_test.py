"""
Quick local test helper: runs the refinement flow on a local photo using a
cutout that was already produced by a background remover, and writes the
finished PNG to disk. This bypasses the AI model and any upload step.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from PIL import Image

from mask_refiner import config
from mask_refiner.pipeline import prepare_image


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Refine a precomputed cutout locally")
    parser.add_argument("--input", required=True, help="Path to the original photo")
    parser.add_argument("--cutout", required=True, help="Path to the remover's RGBA cutout")
    parser.add_argument("--output-dir", required=True, help="Directory for the finished PNG")
    parser.add_argument("--sku", default="LOCAL")
    parser.add_argument("--angle", default="front")
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    args = parse_args()
    cutout_path = Path(args.cutout)
    if not cutout_path.exists():
        raise FileNotFoundError(f"Cutout file not found: {cutout_path}")

    def precomputed_remover(image: Image.Image) -> Image.Image:
        with Image.open(cutout_path) as cutout:
            return cutout.convert("RGBA")

    settings = config.Settings(output_dir=Path(args.output_dir))
    result = prepare_image(
        args.input,
        sku=args.sku,
        angle=args.angle,
        remover=precomputed_remover,
        settings=settings,
    )
    print(json.dumps(result, default=str))


if __name__ == "__main__":
    main()
