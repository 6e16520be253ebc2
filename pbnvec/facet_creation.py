"""Facet extraction: connected-component labeling of the palette index image."""
import logging
from typing import List, Optional

import numpy as np
from scipy import ndimage

from pbnvec.progress import ProgressCallback, report_every
from pbnvec.types import BoundingBox, Facet, FacetResult, InvalidInputError

logger = logging.getLogger(__name__)

# 4-connectivity
FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)


def neighbour_pairs(facet_map: np.ndarray) -> np.ndarray:
    """Distinct (a, b) facet id pairs that touch horizontally or vertically, a < b."""
    pairs = []
    for a, b in ((facet_map[:, :-1], facet_map[:, 1:]), (facet_map[:-1, :], facet_map[1:, :])):
        differs = a != b
        if np.any(differs):
            pairs.append(np.stack([np.minimum(a[differs], b[differs]),
                                   np.maximum(a[differs], b[differs])], axis=1))
    if not pairs:
        return np.empty((0, 2), dtype=np.int32)
    return np.unique(np.concatenate(pairs), axis=0)


def label_components(img_color_indices: np.ndarray) -> np.ndarray:
    """Facet id per pixel, numbered by the row-major position of each region's first pixel."""
    labels = np.zeros(img_color_indices.shape, dtype=np.int64)
    offset = 0
    for color in np.unique(img_color_indices):
        component, count = ndimage.label(img_color_indices == color, structure=FOUR_CONNECTED)
        labels[component > 0] = component[component > 0] + offset
        offset += count

    flat = labels.reshape(-1)
    components, first_seen = np.unique(flat, return_index=True)
    order = components[np.argsort(first_seen, kind="stable")]
    renumber = np.empty(offset + 1, dtype=np.int32)
    renumber[order] = np.arange(len(order), dtype=np.int32)
    return renumber[labels]


def extract_facets(
    width: int,
    height: int,
    img_color_indices: np.ndarray,
    on_progress: Optional[ProgressCallback] = None,
) -> FacetResult:
    """Build one facet per maximal 4-connected region of equal palette index.

    Args:
        width: Image width
        height: Image height
        img_color_indices: (H, W) palette index per pixel
        on_progress: Receives the fraction of facets built

    Returns:
        A fresh FacetResult; facet ids follow row-major first-pixel order

    Raises:
        InvalidInputError: If the index image does not match width x height
    """
    if img_color_indices.shape != (height, width) or width == 0 or height == 0:
        raise InvalidInputError(
            f"Index image shape {img_color_indices.shape} does not match {width}x{height}"
        )

    facet_map = label_components(img_color_indices)
    n_facets = int(facet_map.max()) + 1
    point_counts = np.bincount(facet_map.reshape(-1), minlength=n_facets)
    # Every id has at least one pixel, so find_objects never yields None here
    boxes = ndimage.find_objects(facet_map + 1)

    first_pixels = np.unique(facet_map.reshape(-1), return_index=True)[1]
    colors = img_color_indices.reshape(-1)[first_pixels]

    tick = report_every(n_facets, on_progress)
    facets: List[Optional[Facet]] = []
    for facet_id in range(n_facets):
        rows, cols = boxes[facet_id]
        facets.append(Facet(
            id=facet_id,
            color_index=int(colors[facet_id]),
            point_count=int(point_counts[facet_id]),
            bbox=BoundingBox(cols.start, rows.start, cols.stop - 1, rows.stop - 1),
        ))
        tick(facet_id + 1)

    for a, b in neighbour_pairs(facet_map):
        facets[a].neighbours.add(int(b))
        facets[b].neighbours.add(int(a))

    logger.info(f"Created {n_facets} facets from {width}x{height} image")
    return FacetResult(width=width, height=height, facets=facets, facet_map=facet_map)
