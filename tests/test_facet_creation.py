"""Tests for facet extraction."""
import numpy as np
import pytest

from pbnvec.facet_creation import extract_facets, label_components, neighbour_pairs
from pbnvec.types import InvalidInputError

from helpers import facets_from_indices


class TestExtractFacets:
    """Test connected-component facets."""

    def test_uniform_image_single_facet(self):
        """A 2x2 single-color image is one facet of four points."""
        result = facets_from_indices([[0, 0], [0, 0]])

        assert result.facet_count == 1
        facet = result.facets[0]
        assert facet.point_count == 4
        assert facet.color_index == 0
        assert facet.neighbours == set()
        assert (facet.bbox.min_x, facet.bbox.min_y, facet.bbox.max_x, facet.bbox.max_y) == (0, 0, 1, 1)

    def test_checkerboard_facets(self):
        """Diagonal pixels are not connected, so every checkerboard cell is its own facet."""
        ys, xs = np.indices((4, 4))
        result = facets_from_indices((ys + xs) % 2)

        assert result.facet_count == 16
        assert all(f.point_count == 1 for f in result.facets)
        assert sum(1 for f in result.facets if f.color_index == 0) == 8
        np.testing.assert_array_equal(result.facet_map, np.arange(16).reshape(4, 4))

    def test_checkerboard_neighbours(self):
        """Neighbours are the 4-connected cells."""
        ys, xs = np.indices((4, 4))
        result = facets_from_indices((ys + xs) % 2)

        assert result.facets[5].neighbours == {1, 4, 6, 9}
        assert result.facets[0].neighbours == {1, 4}

    def test_ids_follow_first_pixel_order(self):
        """Facet ids are assigned in row-major order of each facet's first pixel."""
        result = facets_from_indices([[1, 1, 0],
                                      [0, 0, 0]])

        assert result.facet_count == 2
        assert result.facets[0].color_index == 1
        assert result.facets[0].point_count == 2
        assert result.facets[1].color_index == 0
        assert result.facets[1].point_count == 4
        assert result.facets[0].neighbours == {1}

    def test_same_color_split_into_regions(self):
        """Separate regions of one color become separate facets."""
        result = facets_from_indices([[0, 1, 0]])

        assert result.facet_count == 3
        assert [f.color_index for f in result.facets] == [0, 1, 0]
        assert result.facets[1].neighbours == {0, 2}

    def test_point_counts_cover_image(self, random_indices):
        """Facet point counts sum to the image area."""
        result = facets_from_indices(random_indices)

        assert sum(f.point_count for f in result.facets) == random_indices.size

    def test_facet_map_consistent(self, random_indices):
        """Every pixel's facet has that pixel's color and bbox contains it."""
        result = facets_from_indices(random_indices)

        for facet in result.facets:
            ys, xs = np.nonzero(result.facet_map == facet.id)
            assert len(ys) == facet.point_count
            assert np.all(random_indices[ys, xs] == facet.color_index)
            assert xs.min() == facet.bbox.min_x and xs.max() == facet.bbox.max_x
            assert ys.min() == facet.bbox.min_y and ys.max() == facet.bbox.max_y

    def test_neighbours_symmetric_and_differently_colored(self, random_indices):
        """Adjacent facets list each other and never share a color."""
        result = facets_from_indices(random_indices)

        for facet in result.facets:
            for n in facet.neighbours:
                assert facet.id in result.facets[n].neighbours
                assert result.facets[n].color_index != facet.color_index

    def test_deterministic(self, random_indices):
        """The same index image always gives the same facet map."""
        first = facets_from_indices(random_indices)
        second = facets_from_indices(random_indices)

        np.testing.assert_array_equal(first.facet_map, second.facet_map)

    def test_progress_reaches_one(self, random_indices):
        """Progress finishes at 1.0."""
        values = []

        extract_facets(24, 24, random_indices, on_progress=values.append)

        assert values[-1] == pytest.approx(1.0)

    def test_shape_mismatch_rejected(self):
        """Width and height must match the index image."""
        with pytest.raises(InvalidInputError):
            extract_facets(3, 3, np.zeros((2, 2), dtype=np.int32))


class TestHelpers:
    """Test labeling helpers."""

    def test_label_components_renumbers(self):
        labels = label_components(np.array([[2, 2, 1], [1, 1, 1]]))

        np.testing.assert_array_equal(labels, [[0, 0, 1], [1, 1, 1]])

    def test_neighbour_pairs(self):
        pairs = neighbour_pairs(np.array([[0, 1], [2, 2]]))

        assert [tuple(p) for p in pairs] == [(0, 1), (0, 2), (1, 2)]

    def test_neighbour_pairs_single_facet(self):
        assert neighbour_pairs(np.zeros((3, 3), dtype=np.int32)).shape == (0, 2)
