"""Border segmentation: split borders at junctions and smooth by halving."""
import logging
from typing import Dict, List, Optional, Tuple

from pbnvec.border_tracing import (
    edge_direction,
    is_split_vertex,
    junction_vertices,
    left_neighbour,
    padded_ids,
    to_lattice,
)
from pbnvec.progress import ProgressCallback, report_every
from pbnvec.types import BoundarySegment, Facet, FacetResult, Point

logger = logging.getLogger(__name__)

SegmentKey = Tuple[Tuple[float, float], ...]

# Shortest straight run, in wall edges, on both sides of a corner kept by halving
MIN_CORNER_RUN = 2


def halve_points(points: List[Point]) -> List[Point]:
    """One halving pass: average interior points pairwise, keep the endpoints.

    A closed loop (first point == last) keeps at least two interior points so
    it stays a polygon; an open segment keeps at least one once it has one.
    """
    interior = points[1:-1]
    if len(interior) < 2:
        return points
    closed = points[0] == points[-1]
    if closed and len(interior) < 3:
        return points

    halved = [
        Point((interior[j].x + interior[j + 1].x) / 2, (interior[j].y + interior[j + 1].y) / 2)
        for j in range(0, len(interior) - 1, 2)
    ]
    if len(interior) % 2 == 1:
        halved.append(interior[-1])
    return [points[0]] + halved + [points[-1]]


def _step(a: Point, b: Point) -> Tuple[int, int]:
    return (b.x > a.x) - (b.x < a.x), (b.y > a.y) - (b.y < a.y)


def corner_indices(points: List[Point]) -> List[int]:
    """Interior indices where two straight runs of MIN_CORNER_RUN or more edges meet.

    Staircase steps are shorter runs and are left to the halving.
    """
    n = len(points)
    if n < 3:
        return []
    steps = [_step(points[i], points[i + 1]) for i in range(n - 1)]
    ending = [1] * (n - 1)
    for i in range(1, n - 1):
        if steps[i] == steps[i - 1]:
            ending[i] = ending[i - 1] + 1
    starting = [1] * (n - 1)
    for i in range(n - 3, -1, -1):
        if steps[i] == steps[i + 1]:
            starting[i] = starting[i + 1] + 1
    return [k for k in range(1, n - 1)
            if steps[k - 1] != steps[k]
            and ending[k - 1] >= MIN_CORNER_RUN and starting[k] >= MIN_CORNER_RUN]


def _halve_run(points: List[Point], passes: int) -> List[Point]:
    for _ in range(passes):
        reduced = halve_points(points)
        if len(reduced) == len(points):
            break
        points = reduced
    return points


def halve(points: List[Point], passes: int) -> List[Point]:
    """Halve a traced segment ``passes`` times, keeping its real corners.

    The segment is cut at its corners and each piece is halved on its own,
    so straight edges stay on their line and only staircases get smoothed.
    """
    cuts = corner_indices(points)
    if not cuts:
        return _halve_run(points, passes)

    bounds = [0] + cuts + [len(points) - 1]
    result = [points[0]]
    for start, end in zip(bounds, bounds[1:]):
        result.extend(_halve_run(points[start:end + 1], passes)[1:])
    return result


def split_border(facet: Facet, ids, junctions) -> List[BoundarySegment]:
    """Cut a traced border path into segments with a single neighbour each."""
    path = facet.border_path[:-1]
    n = len(path)
    neighbours = []
    for i in range(n):
        vx, vy = to_lattice(path[i])
        neighbours.append(left_neighbour(ids, vx, vy, edge_direction(path[i], path[(i + 1) % n])))

    splits = [i for i in range(n)
              if is_split_vertex(junctions, *to_lattice(path[i]), neighbours[i - 1], neighbours[i])]
    if not splits:
        return [BoundarySegment(points=path + [path[0]], neighbour=neighbours[0])]

    segments = []
    for k, start in enumerate(splits):
        end = splits[(k + 1) % len(splits)]
        if end > start:
            points = path[start:end + 1]
        else:
            points = path[start:] + path[:end + 1]
        segments.append(BoundarySegment(points=points, neighbour=neighbours[start]))
    return segments


def _canonical(points: List[Point]) -> Tuple[SegmentKey, bool]:
    forward = tuple((p.x, p.y) for p in points)
    backward = forward[::-1]
    return (forward, False) if forward <= backward else (backward, True)


def segment_borders(
    facet_result: FacetResult,
    halving_passes: int,
    on_progress: Optional[ProgressCallback] = None,
) -> None:
    """Attach ``border_segments`` to every traced facet.

    Segments run between junction vertices, so the stretch of border two
    facets share is the same segment seen from both sides. Each shared
    segment is halved once and the neighbour reuses the reversed result,
    keeping smoothed borders identical on both sides. Zero passes reproduce
    the traced path; more passes never add points.
    """
    ids = padded_ids(facet_result.facet_map).tolist()
    junctions = junction_vertices(facet_result.facet_map).tolist()
    smoothed: Dict[SegmentKey, List[Point]] = {}

    live = facet_result.live_facets()
    tick = report_every(len(live), on_progress)
    for done, facet in enumerate(live, start=1):
        segments = []
        if not facet.border_path:
            logger.warning(f"Facet {facet.id} has no traced border; skipping segmentation")
            facet.border_segments = segments
            tick(done)
            continue
        for segment in split_border(facet, ids, junctions):
            key, reversed_ = _canonical(segment.points)
            if key not in smoothed:
                canonical = segment.points[::-1] if reversed_ else segment.points
                smoothed[key] = halve(canonical, halving_passes)
            points = smoothed[key][::-1] if reversed_ else list(smoothed[key])
            segments.append(BoundarySegment(points=points, neighbour=segment.neighbour))
        facet.border_segments = segments
        tick(done)

    logger.info(f"Built border segments for {len(live)} facets "
                f"({len(smoothed)} distinct, {halving_passes} halving passes)")
