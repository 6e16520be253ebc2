"""Label placement: find an interior rectangle for each facet's number."""
import logging
from typing import List, Optional, Tuple

import numpy as np
from scipy import ndimage

from pbnvec.progress import ProgressCallback, report_every
from pbnvec.types import Facet, FacetResult, LabelBounds, PipelineWarning, WarningKind

logger = logging.getLogger(__name__)

# Chessboard distance needed for a usable label (a 3x3 block of own pixels)
MIN_LABEL_DISTANCE = 2
# Gap kept between the label box and the pixel walls around it
LABEL_INSET = 0.25
# Widest label box relative to its height
MAX_ASPECT = 2


def _nearest(candidates: np.ndarray, cy: float, cx: float) -> Tuple[int, int]:
    """Candidate (row, col) closest to the centroid; ties resolved in scan order."""
    d2 = (candidates[:, 0] - cy) ** 2 + (candidates[:, 1] - cx) ** 2
    row, col = candidates[int(np.argmin(d2))]
    return int(row), int(col)


def _widen(mask: np.ndarray, r0: int, r1: int, c0: int, c1: int) -> Tuple[int, int]:
    """Grow the column range left and right while whole columns stay inside the facet."""
    height = r1 - r0 + 1
    grew = True
    while grew and (c1 - c0 + 1) < MAX_ASPECT * height:
        grew = False
        if c0 > 0 and mask[r0:r1 + 1, c0 - 1].all():
            c0 -= 1
            grew = True
        if (c1 - c0 + 1) < MAX_ASPECT * height and c1 + 1 < mask.shape[1] and mask[r0:r1 + 1, c1 + 1].all():
            c1 += 1
            grew = True
    return c0, c1


def find_label_bounds(facet: Facet, facet_map: np.ndarray) -> Tuple[LabelBounds, bool]:
    """Largest centered square of own pixels, widened sideways, closest to the centroid.

    Returns:
        Tuple of (bounds in wall coordinates, degraded). A degraded facet has
        no 3x3 block of its own pixels and gets a marker on the own pixel
        nearest its centroid.
    """
    rows, cols = facet.bbox.slices()
    mask = facet_map[rows, cols] == facet.id
    distance = ndimage.distance_transform_cdt(np.pad(mask, 1), metric="chessboard")[1:-1, 1:-1]

    pixels = np.argwhere(mask)
    cy, cx = pixels.mean(axis=0)
    best = int(distance.max())
    degraded = best < MIN_LABEL_DISTANCE

    if degraded:
        row, col = _nearest(pixels, cy, cx)
        r0, r1, c0, c1 = row, row, col, col
    else:
        row, col = _nearest(np.argwhere(distance == best), cy, cx)
        radius = best - 1
        r0, r1 = row - radius, row + radius
        c0, c1 = _widen(mask, r0, r1, col - radius, col + radius)

    bounds = LabelBounds(
        min_x=facet.bbox.min_x + c0 - 0.5 + LABEL_INSET,
        min_y=facet.bbox.min_y + r0 - 0.5 + LABEL_INSET,
        width=(c1 - c0 + 1) - 2 * LABEL_INSET,
        height=(r1 - r0 + 1) - 2 * LABEL_INSET,
    )
    return bounds, degraded


def place_labels(
    facet_result: FacetResult,
    on_progress: Optional[ProgressCallback] = None,
    warnings: Optional[List[PipelineWarning]] = None,
) -> None:
    """Attach ``label_bounds`` to every facet.

    Facets too small or thin for a proper label get a minimal marker and a
    LABEL_PLACEMENT_DEGRADED warning instead of failing the run.
    """
    live = facet_result.live_facets()
    tick = report_every(len(live), on_progress)
    degraded_count = 0
    for done, facet in enumerate(live, start=1):
        facet.label_bounds, facet.label_degraded = find_label_bounds(facet, facet_result.facet_map)
        if facet.label_degraded:
            degraded_count += 1
            if warnings is not None:
                warnings.append(PipelineWarning(
                    WarningKind.LABEL_PLACEMENT_DEGRADED,
                    "label_placement",
                    f"Facet {facet.id} ({facet.point_count} points) has no room for a label",
                    facet.id,
                ))
        tick(done)

    if degraded_count:
        logger.warning(f"{degraded_count} of {len(live)} facets got a fallback label marker")
    logger.info(f"Placed labels for {len(live)} facets")
