"""Facet reduction: merge undersized facets into their largest neighbour."""
import logging
from typing import List, Optional, Sequence

import numpy as np

from pbnvec.progress import ProgressCallback
from pbnvec.types import RGB, Facet, FacetResult, PipelineWarning, WarningKind

logger = logging.getLogger(__name__)


def _largest_neighbour(facet: Facet, facets: List[Optional[Facet]]) -> Optional[Facet]:
    """Neighbour with the most points; ties go to the lowest id."""
    best = None
    for neighbour_id in sorted(facet.neighbours):
        neighbour = facets[neighbour_id]
        if best is None or neighbour.point_count > best.point_count:
            best = neighbour
    return best


def _absorb(target: Facet, source: Facet, facet_result: FacetResult, img_color_indices: np.ndarray) -> None:
    """Move every pixel of ``source`` into ``target`` and drop the source slot."""
    rows, cols = source.bbox.slices()
    region = facet_result.facet_map[rows, cols] == source.id
    facet_result.facet_map[rows, cols][region] = target.id
    img_color_indices[rows, cols][region] = target.color_index

    target.point_count += source.point_count
    target.bbox = target.bbox.union(source.bbox)

    for neighbour_id in source.neighbours:
        if neighbour_id == target.id:
            continue
        neighbour = facet_result.facets[neighbour_id]
        neighbour.neighbours.discard(source.id)
        neighbour.neighbours.add(target.id)
        target.neighbours.add(neighbour_id)
    target.neighbours.discard(source.id)
    facet_result.facets[source.id] = None


def merge_facet(
    facet: Facet,
    facet_result: FacetResult,
    img_color_indices: np.ndarray,
) -> Optional[Facet]:
    """Merge ``facet`` into its largest neighbour.

    The neighbour then absorbs any of its new neighbours sharing its color,
    so every facet stays a maximal single-color region.

    Returns:
        The facet that received the pixels, or None when there is no neighbour
    """
    target = _largest_neighbour(facet, facet_result.facets)
    if target is None:
        return None
    _absorb(target, facet, facet_result, img_color_indices)

    same_color = [n for n in sorted(target.neighbours)
                  if facet_result.facets[n].color_index == target.color_index]
    while same_color:
        _absorb(target, facet_result.facets[same_color.pop(0)], facet_result, img_color_indices)
        same_color = [n for n in sorted(target.neighbours)
                      if facet_result.facets[n].color_index == target.color_index]
    return target


def reduce_facets(
    min_point_count: int,
    largest_first: bool,
    max_facet_count: float,
    colors_by_index: Sequence[RGB],
    facet_result: FacetResult,
    img_color_indices: np.ndarray,
    on_progress: Optional[ProgressCallback] = None,
    warnings: Optional[List[PipelineWarning]] = None,
) -> None:
    """Remove facets below ``min_point_count``, then cap the facet count.

    Undersized facets are visited largest-first or smallest-first and merged
    into their largest neighbour. Afterwards the smallest facets are merged
    away until at most ``max_facet_count`` remain. Facet ids are stable:
    removed facets leave a None slot. Both ``facet_result`` and
    ``img_color_indices`` are updated in place.
    """
    facets = facet_result.facets
    initial_count = facet_result.facet_count
    exhausted = set()

    def record_exhausted(facet: Facet, reason: str) -> None:
        if facet.id in exhausted:
            return
        exhausted.add(facet.id)
        message = f"Facet {facet.id} ({facet.point_count} points) cannot be merged: {reason}"
        logger.warning(message)
        if warnings is not None:
            warnings.append(PipelineWarning(
                WarningKind.FACET_REDUCTION_EXHAUSTED, "facet_reduction", message, facet.id))

    undersized = [f for f in facets if f is not None and f.point_count < min_point_count]
    undersized.sort(key=lambda f: (-f.point_count, f.id) if largest_first else (f.point_count, f.id))
    logger.debug(f"{len(undersized)} facets below {min_point_count} points")

    # Merges only grow facets, so a single ordered pass settles the size policy
    for done, facet in enumerate(undersized, start=1):
        if facets[facet.id] is facet and facet.point_count < min_point_count:
            if merge_facet(facet, facet_result, img_color_indices) is None:
                record_exhausted(facet, "it has no neighbours")
        if on_progress is not None and done % max(1, len(undersized) // 20) == 0:
            on_progress(done / (len(undersized) + 1))

    # Each merge removes at least one slot, bounding the loop by the initial count
    while facet_result.facet_count > max_facet_count:
        candidates = sorted(
            (f for f in facets if f is not None and f.neighbours),
            key=lambda f: (f.point_count, f.id),
        )
        if not candidates:
            for facet in facet_result.live_facets():
                record_exhausted(facet, f"facet count {facet_result.facet_count} exceeds "
                                        f"maximum {max_facet_count:g}")
            break
        merge_facet(candidates[0], facet_result, img_color_indices)

    if on_progress is not None:
        on_progress(1.0)
    logger.info(f"Reduced facets from {initial_count} to {facet_result.facet_count} "
                f"({len(colors_by_index)} colors)")
