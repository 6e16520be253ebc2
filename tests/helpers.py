"""Helpers shared by the pbnvec test modules."""
import numpy as np

from pbnvec.config import PipelineConfig
from pbnvec.facet_creation import extract_facets

RED = (200, 30, 30)
GREEN = (40, 180, 60)
BLUE = (30, 60, 200)
YELLOW = (240, 220, 20)


def facets_from_indices(indices):
    """FacetResult for a palette index image given as nested lists or array."""
    indices = np.asarray(indices, dtype=np.int32)
    return extract_facets(indices.shape[1], indices.shape[0], indices)


def exact_config(**kwargs):
    """Config that keeps every pixel as clustered: no cleanup, no merging, no resize."""
    values = dict(
        cleanup_runs=0,
        min_facet_size=0,
        border_halving_passes=0,
        resize_if_too_large=False,
    )
    values.update(kwargs)
    return PipelineConfig(**values)


def shoelace_area(path):
    """Area enclosed by a closed path (first point repeated at the end)."""
    return abs(sum(a.x * b.y - b.x * a.y for a, b in zip(path, path[1:]))) / 2


def contains(path, x, y):
    """Even-odd ray cast: whether (x, y) lies inside a closed path."""
    inside = False
    for a, b in zip(path, path[1:]):
        if (a.y > y) != (b.y > y):
            crossing = a.x + (y - a.y) * (b.x - a.x) / (b.y - a.y)
            if x < crossing:
                inside = not inside
    return inside
