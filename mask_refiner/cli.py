"""
Command-line tools for the mask refinement pipeline.

Every tool prints exactly one JSON object on stdout, `{"success": true, ...}`
on success or `{"success": false, "error": ...}` with exit code 1 on failure.
Logs go to stderr. Tools that edit a mask overwrite it in place with one
atomic write, so the file is a checkpoint that can be inspected (for example
with `view-on-black`) before the next stage runs.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import numpy as np
import requests

from . import config
from .analysis import analyze_mask, check_issues
from .compositor import composite_on_black, composite_to_canvas, on_black_path
from .edges import extract_edge_profile
from .pipeline import RefinementPipeline, prepare_image
from .raster import dimensions, load_rgba, save_rgba_atomic
from .remover import rembg_remover
from .shape import ShapeRegions

logger = logging.getLogger("mask_refiner")


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, default=str))


def _size(pipeline: RefinementPipeline) -> Dict[str, int]:
    width, height = dimensions(pipeline.image)
    return {"width": width, "height": height}


def _open(args: argparse.Namespace, settings: config.Settings) -> RefinementPipeline:
    return RefinementPipeline.from_files(args.mask, getattr(args, "original", None), settings=settings)


def cmd_threshold(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    pipeline = _open(args, settings)
    result = pipeline.threshold(aggressiveness=args.aggressiveness, mode=args.mode)
    pipeline.checkpoint(args.mask)
    return {
        "mask": args.mask,
        "aggressiveness": config.resolve(args.aggressiveness, settings.aggressiveness),
        "threshold_value": result.threshold_value,
        "mode": result.mode,
        "pixels_cleared": result.pixels_cleared,
        "foreground_pixels": result.foreground_pixels,
        "dimensions": _size(pipeline),
    }


def cmd_shape(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    pipeline = _open(args, settings)
    regions = ShapeRegions(
        cap_end=config.resolve(args.cap_end, settings.shape_cap_end),
        body_start=config.resolve(args.body_start, settings.shape_body_start),
        body_end=config.resolve(args.body_end, settings.shape_body_end),
    )
    result = pipeline.correct_shape(regions=regions, base_taper=args.base_taper)
    pipeline.checkpoint(args.mask)
    return {
        "mask": args.mask,
        "pixels_changed": result.pixels_changed,
        "median_left": result.median_left,
        "median_right": result.median_right,
        "regions": result.regions,
        "dimensions": _size(pipeline),
    }


def cmd_mirror(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    pipeline = _open(args, settings)
    result = pipeline.mirror(
        center=args.center,
        source_side=args.source_side,
        target_side=args.target_side,
        row_from=args.from_row,
        row_to=args.to_row,
    )
    pipeline.checkpoint(args.mask)
    return {
        "mask": args.mask,
        "pixels_changed": result.pixels_changed,
        "rows_mirrored": result.rows_mirrored,
        "rows_skipped": result.rows_skipped,
        "center": result.center,
        "source_side": result.source_side,
        "target_side": result.target_side,
    }


def cmd_harden(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    pipeline = _open(args, settings)
    result = pipeline.harden(threshold=args.threshold, mode=args.mode)
    pipeline.checkpoint(args.mask)
    return {
        "mask": args.mask,
        "pixels_hardened": result.pixels_hardened,
        "pixels_cleared": result.pixels_cleared,
        "rows_without_product": result.rows_without_product,
        "bg_luminosity": result.bg_luminosity,
        "bg_color": pipeline.background.as_dict(),
        "threshold": result.threshold,
        "mode": result.mode,
    }


def cmd_edit(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    edge_op = args.left_edge is not None or args.right_edge is not None
    rect_op = args.fill_rect or args.clear_rect
    if not edge_op and not rect_op:
        raise ValueError("edit needs one of --left-edge, --right-edge, --fill-rect, --clear-rect")
    if edge_op and (args.from_row is None or args.to_row is None):
        raise ValueError("--left-edge/--right-edge require --from-row and --to-row")
    if rect_op and None in (args.x1, args.y1, args.x2, args.y2):
        raise ValueError("--fill-rect/--clear-rect require --x1 --y1 --x2 --y2")

    pipeline = _open(args, settings)
    editor = pipeline.editor(blend_zone=args.blend_zone, bg_threshold=args.bg_threshold)
    if args.left_edge is not None:
        editor.set_left_edge(args.left_edge, args.from_row, args.to_row)
    if args.right_edge is not None:
        editor.set_right_edge(args.right_edge, args.from_row, args.to_row)
    if args.fill_rect:
        editor.fill_rect(args.x1, args.y1, args.x2, args.y2)
    if args.clear_rect:
        editor.clear_rect(args.x1, args.y1, args.x2, args.y2)
    pipeline.checkpoint(args.mask)

    background = pipeline.background
    return {
        "mask": args.mask,
        "original": args.original,
        "operations": [r.operation for r in editor.results],
        "pixels_changed": editor.pixels_changed,
        "pixels_skipped_background": editor.pixels_skipped_background,
        "blend_zone": editor.blend_zone,
        "bg_threshold": editor.bg_threshold,
        "bg_color": background.as_dict() if background else None,
        "dimensions": _size(pipeline),
    }


def cmd_dilate(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    pipeline = _open(args, settings)
    changed = pipeline.dilate(radius=args.radius)
    pipeline.checkpoint(args.mask)
    return {"mask": args.mask, "radius": args.radius, "pixels_changed": changed}


def cmd_composite(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    image = load_rgba(args.mask)
    target_size = config.resolve(args.target_size, settings.target_size)
    padding = config.resolve(args.padding, settings.padding)
    canvas = composite_to_canvas(image, target_size=target_size, padding=padding)
    output = save_rgba_atomic(np.array(canvas, dtype=np.uint8), args.output)
    return {"output": str(output), "width": target_size, "height": target_size, "padding": padding}


def cmd_view_on_black(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    image = load_rgba(args.image)
    output = save_rgba_atomic(np.array(composite_on_black(image), dtype=np.uint8), on_black_path(args.image))
    width, height = dimensions(image)
    return {"output": str(output), "dimensions": {"width": width, "height": height}}


def cmd_analyze(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    image = load_rgba(args.mask)
    body_start, body_end = args.body_start_row, args.body_end_row
    if body_start is None or body_end is None:
        profile = extract_edge_profile(image[..., 3], 0)
        if profile.is_empty:
            raise ValueError("mask has no content")
        regions = ShapeRegions(
            cap_end=settings.shape_cap_end,
            body_start=settings.shape_body_start,
            body_end=settings.shape_body_end,
        ).rows(profile.top_y, profile.bottom_y)
        body_start = regions["body"][0] if body_start is None else body_start
        body_end = regions["body"][1] if body_end is None else body_end
    analysis = analyze_mask(image, body_start, body_end, tolerance=args.tolerance)
    payload = analysis.to_dict()
    payload.update({"mask": args.mask, "body_rows_range": [body_start, body_end]})
    return payload


def cmd_check_issues(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    pipeline = _open(args, settings)
    report = check_issues(
        pipeline.image,
        pipeline.original,
        pipeline.background,
        min_gap=args.min_gap,
        row_margin=args.row_margin,
        dark_offset=settings.harden_dark_offset,
    )
    payload = report.to_dict()
    payload["recommended_commands"] = [
        f"mask-refiner edit --mask {args.mask} --original {args.original} "
        f"--left-edge {c.left_edge} --from-row {c.from_row} --to-row {c.to_row} --blend-zone 10"
        for c in report.corrections
    ]
    return payload


def cmd_prepare(args: argparse.Namespace, settings: config.Settings) -> Dict[str, Any]:
    overrides = {
        "aggressiveness": args.aggressiveness,
        "target_size": args.target_size,
        "padding": args.padding,
        "naming": args.naming,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        settings = config.Settings(**{**settings.model_dump(), **overrides})
    return prepare_image(
        args.url or args.file,
        sku=args.sku,
        angle=args.angle,
        remover=rembg_remover(settings.rembg_model),
        settings=settings,
        thumbnail=args.thumbnail,
        shape_correction=not args.no_shape,
    )


def _mask_args(parser: argparse.ArgumentParser, original_required: bool) -> None:
    parser.add_argument("--mask", required=True, help="Mask/cutout PNG, overwritten in place")
    parser.add_argument(
        "--original",
        required=original_required,
        default=None,
        help="Original source image (colors and background detection)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mask-refiner", description="Product cutout mask refinement tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("threshold", help="Threshold probabilistic alpha")
    _mask_args(p, original_required=False)
    p.add_argument("--aggressiveness", type=int, default=None, help="1-100")
    p.add_argument("--mode", choices=config.ALPHA_MODES, default=None)
    p.set_defaults(func=cmd_threshold)

    p = sub.add_parser("shape", help="Straight body sides, smooth cap and base")
    _mask_args(p, original_required=False)
    p.add_argument("--cap-end", type=float, default=None)
    p.add_argument("--body-start", type=float, default=None)
    p.add_argument("--body-end", type=float, default=None)
    p.add_argument("--base-taper", type=float, default=None)
    p.set_defaults(func=cmd_shape)

    p = sub.add_parser("mirror", help="Mirror one edge onto the other about a center")
    _mask_args(p, original_required=True)
    p.add_argument("--center", type=int, required=True)
    p.add_argument("--source-side", choices=("left", "right"), required=True)
    p.add_argument("--target-side", choices=("left", "right"), default=None)
    p.add_argument("--from-row", type=int, default=0)
    p.add_argument("--to-row", type=int, default=None, help="Exclusive")
    p.set_defaults(func=cmd_mirror)

    p = sub.add_parser("harden", help="Remove semi-transparent edge pixels")
    _mask_args(p, original_required=True)
    p.add_argument("--threshold", type=int, default=None, help="Luminosity offset above background")
    p.add_argument("--mode", choices=config.HARDEN_MODES, default=None)
    p.set_defaults(func=cmd_harden)

    p = sub.add_parser("edit", help="Targeted manual mask edits")
    _mask_args(p, original_required=False)
    p.add_argument("--left-edge", type=int, default=None)
    p.add_argument("--right-edge", type=int, default=None)
    p.add_argument("--from-row", type=int, default=None, help="Inclusive")
    p.add_argument("--to-row", type=int, default=None, help="Inclusive")
    p.add_argument("--fill-rect", action="store_true")
    p.add_argument("--clear-rect", action="store_true")
    for name in ("--x1", "--y1", "--x2", "--y2"):
        p.add_argument(name, type=int, default=None)
    p.add_argument("--blend-zone", type=int, default=None)
    p.add_argument("--bg-threshold", type=float, default=None)
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("dilate", help="Grow the mask to close small gaps")
    p.add_argument("--mask", required=True)
    p.add_argument("--radius", type=int, required=True)
    p.set_defaults(func=cmd_dilate)

    p = sub.add_parser("composite", help="Trim, scale and center on a square canvas")
    p.add_argument("--mask", required=True)
    p.add_argument("--output", required=True)
    p.add_argument("--target-size", type=int, default=None)
    p.add_argument("--padding", type=float, default=None)
    p.set_defaults(func=cmd_composite)

    p = sub.add_parser("view-on-black", help="Write <name>-on-black.png for edge review")
    p.add_argument("--image", required=True)
    p.set_defaults(func=cmd_view_on_black)

    p = sub.add_parser("analyze", help="Report body edge straightness")
    p.add_argument("--mask", required=True)
    p.add_argument("--body-start-row", type=int, default=None)
    p.add_argument("--body-end-row", type=int, default=None)
    p.add_argument("--tolerance", type=int, default=2)
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser("check-issues", help="Find rows where the mask cuts into the product")
    _mask_args(p, original_required=True)
    p.add_argument("--min-gap", type=int, default=3)
    p.add_argument("--row-margin", type=int, default=0)
    p.set_defaults(func=cmd_check_issues)

    p = sub.add_parser("prepare", help="Full flow: AI cutout to finished product PNG")
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--url")
    source.add_argument("--file")
    p.add_argument("--sku", required=True)
    p.add_argument("--angle", default="front")
    p.add_argument("--aggressiveness", type=int, default=None)
    p.add_argument("--target-size", type=int, default=None)
    p.add_argument("--padding", type=float, default=None)
    p.add_argument("--naming", default=None)
    p.add_argument("--no-shape", action="store_true", help="Skip bottle shape correction")
    thumb = p.add_mutually_exclusive_group()
    thumb.add_argument("--thumbnail", dest="thumbnail", action="store_true", default=None)
    thumb.add_argument("--no-thumbnail", dest="thumbnail", action="store_false")
    p.set_defaults(func=cmd_prepare)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = config.get_settings()
        logging.getLogger().setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
        payload = args.func(args, settings)
    except (FileNotFoundError, ValueError, RuntimeError, requests.RequestException) as exc:
        logger.error("%s failed: %s", args.command, exc)
        _emit({"success": False, "error": str(exc)})
        return 1
    except Exception as exc:  # noqa: BLE001
        logger.exception("%s failed unexpectedly: %s", args.command, exc)
        _emit({"success": False, "error": str(exc)})
        return 1

    _emit({"success": True, **payload})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
