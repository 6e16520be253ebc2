"""Tests for border tracing on the pixel-corner lattice."""
import numpy as np
import pytest

from pbnvec.border_tracing import junction_vertices, trace_borders
from pbnvec.types import BorderTraceError, BoundingBox, Facet, FacetResult, Point

from helpers import facets_from_indices


def _points(*coords):
    return [Point(x, y) for x, y in coords]


class TestTraceBorders:
    """Test closed border paths."""

    def test_uniform_2x2(self):
        """A 2x2 facet is traced along its eight unit wall edges, closed."""
        result = facets_from_indices([[0, 0], [0, 0]])

        trace_borders(result)

        path = result.facets[0].border_path
        assert path == _points(
            (-0.5, -0.5), (0.5, -0.5), (1.5, -0.5), (1.5, 0.5), (1.5, 1.5),
            (0.5, 1.5), (-0.5, 1.5), (-0.5, 0.5), (-0.5, -0.5))
        assert len(set(path)) == 8

    def test_two_halves_share_border(self):
        """Two facets walk their common edge through the same wall points."""
        indices = np.zeros((4, 4), dtype=np.int32)
        indices[:, 2:] = 1
        result = facets_from_indices(indices)

        trace_borders(result)

        shared = _points((1.5, -0.5), (1.5, 0.5), (1.5, 1.5), (1.5, 2.5), (1.5, 3.5))
        # Paths start at the first junction on the shared edge
        assert result.facets[0].border_path[:5] == shared
        assert result.facets[0].border_path[5:] == _points(
            (0.5, 3.5), (-0.5, 3.5), (-0.5, 2.5), (-0.5, 1.5), (-0.5, 0.5),
            (-0.5, -0.5), (0.5, -0.5), (1.5, -0.5))
        assert result.facets[1].border_path[0] == Point(1.5, -0.5)
        assert result.facets[1].border_path[-5:] == shared[::-1]
        assert len(result.facets[1].border_path) == 13

    def test_enclosed_facet(self):
        """The enclosing facet's outer border ignores the hole; the hole is traced on its own."""
        indices = np.zeros((5, 5), dtype=np.int32)
        indices[2, 2] = 1
        result = facets_from_indices(indices)

        trace_borders(result)

        outer = result.facets[0].border_path
        assert len(outer) == 21
        assert outer[0] == outer[-1] == Point(-0.5, -0.5)
        assert all(p.x in (-0.5, 4.5) or p.y in (-0.5, 4.5) for p in outer)
        assert set(_points((4.5, -0.5), (4.5, 4.5), (-0.5, 4.5))) <= set(outer)
        assert result.facets[1].border_path == _points(
            (1.5, 1.5), (2.5, 1.5), (2.5, 2.5), (1.5, 2.5), (1.5, 1.5))

    def test_diagonal_pinch(self):
        """A facet that wraps around a hole touching a corner still traces as one loop."""
        result = facets_from_indices([[0, 1, 1],
                                      [1, 0, 1],
                                      [1, 1, 1]])

        trace_borders(result)

        path = result.facets[1].border_path
        assert path[0] == path[-1]
        assert Point(0.5, 0.5) in path

    def test_checkerboard(self):
        """Every one pixel facet gets a square border."""
        ys, xs = np.indices((4, 4))
        result = facets_from_indices((ys + xs) % 2)

        trace_borders(result)

        for facet in result.facets:
            assert len(facet.border_path) == 5
            assert len(set(facet.border_path)) == 4

    def test_paths_closed_and_on_lattice(self, random_indices):
        """Every path is closed, made of unit wall steps and wall coordinates."""
        result = facets_from_indices(random_indices)

        trace_borders(result)

        height, width = random_indices.shape
        for facet in result.facets:
            path = facet.border_path
            assert len(path) >= 5
            assert path[0] == path[-1]
            for a, b in zip(path, path[1:]):
                assert abs(a.x - b.x) + abs(a.y - b.y) == 1
            for p in path:
                assert (p.x + 0.5).is_integer() and (p.y + 0.5).is_integer()
                assert -0.5 <= p.x <= width - 0.5
                assert -0.5 <= p.y <= height - 0.5

    def test_progress_reaches_one(self, random_indices):
        values = []
        result = facets_from_indices(random_indices)

        trace_borders(result, on_progress=values.append)

        assert values[-1] == pytest.approx(1.0)

    def test_disconnected_facet_rejected(self):
        """A facet id covering two separate regions fails with BorderTraceError."""
        facet_map = np.array([[0, 1, 0]], dtype=np.int32)
        facets = [
            Facet(id=0, color_index=0, point_count=2, bbox=BoundingBox(0, 0, 2, 0), neighbours={1}),
            Facet(id=1, color_index=1, point_count=1, bbox=BoundingBox(1, 0, 1, 0), neighbours={0}),
        ]
        result = FacetResult(width=3, height=1, facets=facets, facet_map=facet_map)

        with pytest.raises(BorderTraceError) as excinfo:
            trace_borders(result)

        assert excinfo.value.facet_id == 0
        assert excinfo.value.stage == "border_tracing"

    def test_removed_facets_skipped(self):
        """None slots in the facet arena are ignored."""
        result = facets_from_indices([[0, 0], [0, 0]])
        result.facets.append(None)

        trace_borders(result)

        assert len(result.facets[0].border_path) == 9


class TestJunctionVertices:
    """Test detection of border split points."""

    def test_uniform_has_no_junctions(self):
        assert not junction_vertices(np.zeros((2, 2), dtype=np.int32)).any()

    def test_three_way_meeting(self):
        """Where two facets meet the image edge, three regions touch one corner."""
        junctions = junction_vertices(np.array([[0, 1]], dtype=np.int32))

        np.testing.assert_array_equal(junctions, [[False, True, False], [False, True, False]])

    def test_diagonal_meeting(self):
        """Two facets touching only diagonally split the border."""
        junctions = junction_vertices(np.array([[0, 1], [1, 0]], dtype=np.int32))

        assert junctions[1, 1]
