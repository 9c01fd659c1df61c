"""
Read-only diagnostics for a mask in progress.

`analyze_mask` reports how straight the body edges are; `check_issues`
compares the mask's left edge with the product edge visible in the original
and proposes `set_left_edge` corrections for the rows where the remover cut
into the product.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import logging
from typing import Any, Dict, List, Optional

import numpy as np

from .background import BackgroundColorModel
from .config import DEFAULT_HARDEN_DARK_OFFSET
from .edges import NO_EDGE, extract_edge_profile
from .raster import dimensions, ensure_rgba, ensure_same_dimensions, luminosity

logger = logging.getLogger(__name__)


@dataclass
class SideReport:
    expected_edge: int
    problem_rows: int
    problem_from: Optional[int] = None
    problem_to: Optional[int] = None
    max_deviation: int = 0

    @property
    def clean(self) -> bool:
        return self.problem_rows == 0


@dataclass
class MaskAnalysis:
    width: int
    height: int
    content_rows: int
    body_rows: int
    left: Optional[SideReport] = None
    right: Optional[SideReport] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EdgeCorrection:
    from_row: int
    to_row: int
    left_edge: int


@dataclass
class IssueReport:
    bg_luminosity: float
    issue_rows: int
    corrections: List[EdgeCorrection] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _side_report(rows: np.ndarray, edges: np.ndarray, outermost: int, tolerance: int) -> SideReport:
    deviation = np.abs(edges - outermost)
    bad = deviation > tolerance
    report = SideReport(expected_edge=int(outermost), problem_rows=int(np.count_nonzero(bad)))
    if report.problem_rows:
        report.problem_from = int(rows[bad][0])
        report.problem_to = int(rows[bad][-1])
        report.max_deviation = int(deviation[bad].max())
    return report


def analyze_mask(
    image: np.ndarray,
    body_start: int,
    body_end: int,
    tolerance: int = 2,
) -> MaskAnalysis:
    """
    Check body rows [body_start, body_end] for edges that wander inward.

    The outermost edge in the body is taken as the expected one; rows more
    than `tolerance` pixels inside it are reported.
    """
    ensure_rgba(image, "mask")
    width, height = dimensions(image)
    profile = extract_edge_profile(image[..., 3], 0)
    content = profile.content_rows()
    body = content[(content >= body_start) & (content <= body_end)]
    analysis = MaskAnalysis(width=width, height=height, content_rows=int(content.size), body_rows=int(body.size))
    if not body.size:
        logger.info("analyze: no content in body rows %d-%d", body_start, body_end)
        return analysis

    left = profile.left[body]
    right = profile.right[body]
    analysis.left = _side_report(body, left, int(left.min()), tolerance)
    analysis.right = _side_report(body, right, int(right.max()), tolerance)
    logger.info(
        "analyze: left problems=%d right problems=%d",
        analysis.left.problem_rows,
        analysis.right.problem_rows,
    )
    return analysis


def _group_ranges(issues: List[tuple], group_gap: int) -> List[EdgeCorrection]:
    corrections: List[EdgeCorrection] = []
    start = end = issues[0][0]
    target = issues[0][1]
    for y, edge in issues[1:]:
        if y <= end + group_gap:
            end = y
            target = min(target, edge)
            continue
        corrections.append(EdgeCorrection(from_row=start, to_row=end, left_edge=target))
        start = end = y
        target = edge
    corrections.append(EdgeCorrection(from_row=start, to_row=end, left_edge=target))
    return corrections


def check_issues(
    image: np.ndarray,
    original: np.ndarray,
    background: BackgroundColorModel,
    min_gap: int = 3,
    group_gap: int = 3,
    dark_offset: int = DEFAULT_HARDEN_DARK_OFFSET,
    light_offset: int = 20,
    row_margin: int = 0,
) -> IssueReport:
    """Find rows where the mask's left edge sits more than `min_gap` px inside the product."""
    ensure_rgba(image, "mask")
    ensure_same_dimensions(image, original)
    height = image.shape[0]

    mask_left = extract_edge_profile(image[..., 3], 0).left
    lum = luminosity(original)
    product = (lum < background.luminosity - dark_offset) | (lum > background.luminosity + light_offset)
    has_product = product.any(axis=1)
    product_left = np.where(has_product, product.argmax(axis=1), NO_EDGE)

    issues = []
    for y in range(row_margin, height - row_margin):
        if mask_left[y] == NO_EDGE or product_left[y] == NO_EDGE:
            continue
        if mask_left[y] - product_left[y] > min_gap:
            issues.append((y, int(product_left[y])))

    report = IssueReport(bg_luminosity=round(background.luminosity, 2), issue_rows=len(issues))
    if issues:
        report.corrections = _group_ranges(issues, group_gap)
    logger.info("check: %d rows where the mask misses product, %d ranges", len(issues), len(report.corrections))
    return report
