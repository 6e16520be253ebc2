"""Border tracing: walk each facet's outer wall into a closed polygon.

Borders are traced on the lattice of pixel corners. Lattice vertex
(vx, vy) is the top-left corner of pixel (vx, vy) and sits at wall
coordinate (vx - 0.5, vy - 0.5), so neighbouring facets produce exactly
the same coordinates along the edge they share.
"""
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import ndimage

from pbnvec.progress import ProgressCallback, report_every
from pbnvec.types import BorderTraceError, Facet, FacetResult, Point

logger = logging.getLogger(__name__)

# Walking directions, clockwise on screen (y down): E, S, W, N
DIRECTIONS = ((1, 0), (0, 1), (-1, 0), (0, -1))
# Pixel on the right / left of an edge leaving a vertex in each direction
RIGHT_PIXEL = ((0, 0), (-1, 0), (-1, -1), (0, -1))
LEFT_PIXEL = ((0, -1), (0, 0), (-1, 0), (-1, -1))

OUTSIDE = -1


def padded_ids(facet_map: np.ndarray) -> np.ndarray:
    """Facet map with a one pixel OUTSIDE border; pixel (x, y) is at [y + 1, x + 1]."""
    return np.pad(facet_map, 1, mode="constant", constant_values=OUTSIDE)


def junction_vertices(facet_map: np.ndarray) -> np.ndarray:
    """(H + 1, W + 1) mask of lattice vertices where borders must split.

    A vertex is a junction when its four surrounding pixels belong to three
    or more facets (the image outside counts as one), or when two facets
    meet diagonally across it.
    """
    padded = padded_ids(facet_map)
    tl, tr = padded[:-1, :-1], padded[:-1, 1:]
    bl, br = padded[1:, :-1], padded[1:, 1:]
    distinct = (1 + (tr != tl)
                + ((bl != tl) & (bl != tr))
                + ((br != tl) & (br != tr) & (br != bl)))
    diagonal = (tl == br) & (tr == bl) & (tl != tr)
    return (distinct >= 3) | diagonal


def to_wall(vx: int, vy: int) -> Point:
    return Point(vx - 0.5, vy - 0.5)


def to_lattice(point: Point) -> Tuple[int, int]:
    return int(round(point.x + 0.5)), int(round(point.y + 0.5))


def edge_direction(a: Point, b: Point) -> int:
    """Direction index of the axis-aligned step from a towards b."""
    dx, dy = b.x - a.x, b.y - a.y
    if dx > 0:
        return 0
    if dy > 0:
        return 1
    if dx < 0:
        return 2
    return 3


def left_neighbour(ids: Sequence[Sequence[int]], vx: int, vy: int, direction: int) -> int:
    """Facet on the far side of the edge leaving (vx, vy) in ``direction``."""
    ox, oy = LEFT_PIXEL[direction]
    return ids[vy + oy + 1][vx + ox + 1]


def is_split_vertex(junctions: Sequence[Sequence[bool]], vx: int, vy: int,
                    neighbour_before: int, neighbour_after: int) -> bool:
    """Whether a border segment starts at this vertex."""
    return bool(junctions[vy][vx]) or neighbour_before != neighbour_after


def _walk(facet: Facet, ids: List[List[int]], start: Tuple[int, int]) -> Tuple[List[Tuple[int, int]], List[int]]:
    """Follow the outer wall keeping the facet on the right, preferring right turns."""

    def is_border_edge(vx: int, vy: int, d: int) -> bool:
        rx, ry = RIGHT_PIXEL[d]
        lx, ly = LEFT_PIXEL[d]
        return ids[vy + ry + 1][vx + rx + 1] == facet.id and ids[vy + ly + 1][vx + lx + 1] != facet.id

    if not is_border_edge(start[0], start[1], 0):
        raise BorderTraceError("first pixel has no top wall", facet_id=facet.id)

    vertices, neighbours = [], []
    visited = set()
    vx, vy, d = start[0], start[1], 0
    limit = 4 * facet.point_count + 4
    while True:
        if (vx, vy, d) in visited:
            raise BorderTraceError(f"wall edge at ({vx}, {vy}) visited twice", facet_id=facet.id)
        visited.add((vx, vy, d))
        vertices.append((vx, vy))
        neighbours.append(left_neighbour(ids, vx, vy, d))

        vx, vy = vx + DIRECTIONS[d][0], vy + DIRECTIONS[d][1]
        for turn in (1, 0, 3):
            if is_border_edge(vx, vy, (d + turn) % 4):
                d = (d + turn) % 4
                break
        else:
            raise BorderTraceError(f"dead end at vertex ({vx}, {vy})", facet_id=facet.id)

        if (vx, vy, d) == (start[0], start[1], 0):
            return vertices, neighbours
        if len(vertices) > limit:
            raise BorderTraceError(f"border longer than {limit} edges does not close", facet_id=facet.id)


def _check_single_loop(facet: Facet, facet_map: np.ndarray, vertices: List[Tuple[int, int]]) -> None:
    """The traced loop must enclose the whole facet and nothing but its holes."""
    xs = np.array([v[0] for v in vertices], dtype=np.int64)
    ys = np.array([v[1] for v in vertices], dtype=np.int64)
    area = abs(int(np.dot(xs, np.roll(ys, -1)) - np.dot(np.roll(xs, -1), ys))) // 2

    rows, cols = facet.bbox.slices()
    mask = facet_map[rows, cols] == facet.id
    # The wall walk treats diagonal background pixels as connected
    enclosed = int(ndimage.binary_fill_holes(mask, structure=np.ones((3, 3), dtype=bool)).sum())
    if area != enclosed:
        raise BorderTraceError(
            f"traced loop encloses {area} pixels but the facet spans {enclosed} "
            f"({facet.point_count} own points); region is not a single loop",
            facet_id=facet.id,
        )


def trace_facet(facet: Facet, facet_map: np.ndarray, ids: List[List[int]],
                junctions: List[List[bool]]) -> List[Point]:
    """Closed border path of one facet, one point per unit wall edge.

    Straight runs keep their intermediate points so later smoothing has
    the full outline to work from. The path starts at the first segment
    split vertex when there is one, so joining the border segments
    reproduces it exactly.
    """
    rows, cols = facet.bbox.slices()
    local = np.argmax(facet_map[rows, cols] == facet.id)
    start_y, start_x = np.unravel_index(local, (facet.bbox.height, facet.bbox.width))
    start = (int(start_x) + facet.bbox.min_x, int(start_y) + facet.bbox.min_y)

    vertices, neighbours = _walk(facet, ids, start)
    _check_single_loop(facet, facet_map, vertices)

    split_at = next(
        (i for i, (vx, vy) in enumerate(vertices)
         if is_split_vertex(junctions, vx, vy, neighbours[i - 1], neighbours[i])),
        0,
    )
    path = [to_wall(vx, vy) for vx, vy in vertices[split_at:] + vertices[:split_at]]
    path.append(path[0])
    return path


def trace_borders(facet_result: FacetResult, on_progress: Optional[ProgressCallback] = None) -> None:
    """Attach a closed ``border_path`` to every facet.

    Raises:
        BorderTraceError: If a facet's outer wall is not one closed loop
            covering the whole facet
    """
    facet_map = facet_result.facet_map
    ids = padded_ids(facet_map).tolist()
    junctions = junction_vertices(facet_map).tolist()

    live = facet_result.live_facets()
    tick = report_every(len(live), on_progress)
    for done, facet in enumerate(live, start=1):
        facet.border_path = trace_facet(facet, facet_map, ids, junctions)
        tick(done)

    logger.info(f"Traced borders of {len(live)} facets")
