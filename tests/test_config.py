"""Tests for run configuration."""
import json
import math

import pytest

from pbnvec.config import (
    ClusteringColorSpace,
    OutputProfile,
    PipelineConfig,
    config_from_dict,
    load_config,
    merge_overrides,
)
from pbnvec.types import InvalidInputError


class TestPipelineConfig:
    """Test defaults and validation."""

    def test_defaults(self):
        config = PipelineConfig()

        assert config.n_clusters == 16
        assert config.kmeans_min_delta == 1.0
        assert config.color_space is ClusteringColorSpace.RGB
        assert config.cleanup_runs == 3
        assert config.min_facet_size == 20
        assert config.remove_largest_first is True
        assert math.isinf(config.max_facet_count)
        assert config.border_halving_passes == 2
        assert (config.resize_width, config.resize_height) == (1024, 1024)
        assert [p.name for p in config.output_profiles] == ["full", "bordersLabels"]

    @pytest.mark.parametrize("field, value", [
        ("n_clusters", 0),
        ("kmeans_min_delta", -1),
        ("kmeans_max_iterations", 0),
        ("cleanup_runs", -1),
        ("min_facet_size", -5),
        ("max_facet_count", 0),
        ("border_halving_passes", -1),
        ("resize_width", 0),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(InvalidInputError):
            PipelineConfig(**{field: value})

    def test_too_many_restrictions(self):
        """More restricted colors than clusters cannot be satisfied."""
        with pytest.raises(InvalidInputError):
            PipelineConfig(n_clusters=1, color_restrictions=((0, 0, 0), (255, 255, 255)))

    def test_unknown_alias_restriction(self):
        with pytest.raises(InvalidInputError):
            PipelineConfig(color_restrictions=("teal",))

    def test_restrictions_resolved(self):
        config = PipelineConfig(
            color_aliases={"white": (255, 255, 255)},
            color_restrictions=("white", (1, 2, 3)),
        )

        assert config.resolved_restrictions() == ((255, 255, 255), (1, 2, 3))

    def test_out_of_range_restriction(self):
        with pytest.raises(InvalidInputError):
            PipelineConfig(color_restrictions=((0, 0, 300),))

    def test_duplicate_profile_names(self):
        with pytest.raises(InvalidInputError):
            PipelineConfig(output_profiles=(OutputProfile(name="a"), OutputProfile(name="a")))

    def test_invalid_profile(self):
        with pytest.raises(InvalidInputError):
            OutputProfile(name="x", size_multiplier=0)
        with pytest.raises(InvalidInputError):
            OutputProfile(name="x", filetype="gif")

    def test_merge_overrides_ignores_none(self):
        config = merge_overrides(PipelineConfig(n_clusters=4), n_clusters=None, random_seed=9)

        assert config.n_clusters == 4
        assert config.random_seed == 9


class TestLoadConfig:
    """Test settings files."""

    def test_camel_case_file(self, tmp_path):
        """Settings files use camelCase keys."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({
            "kMeansNrOfClusters": 8,
            "kMeansClusteringColorSpace": 2,
            "kMeansColorRestrictions": ["black", [255, 255, 255]],
            "colorAliases": {"black": [0, 0, 0]},
            "removeFacetsSmallerThanNrOfPoints": 5,
            "removeFacetsFromLargeToSmall": False,
            "nrOfTimesToHalveBorderSegments": 1,
            "outputProfiles": [
                {"name": "preview", "svgShowLabels": False, "svgSizeMultiplier": 2},
            ],
        }))

        config = load_config(path)

        assert config.n_clusters == 8
        assert config.color_space is ClusteringColorSpace.LAB
        assert config.resolved_restrictions() == ((0, 0, 0), (255, 255, 255))
        assert config.min_facet_size == 5
        assert config.remove_largest_first is False
        assert config.border_halving_passes == 1
        assert config.output_profiles == (OutputProfile(name="preview", show_labels=False, size_multiplier=2),)

    def test_snake_case_and_overrides(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"n_clusters": 6, "color_space": "rgb", "random_seed": 1}))

        config = load_config(path, random_seed=42)

        assert config.n_clusters == 6
        assert config.color_space is ClusteringColorSpace.RGB
        assert config.random_seed == 42

    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidInputError):
            config_from_dict({"numberOfColours": 3})

    def test_unknown_color_space(self):
        with pytest.raises(InvalidInputError):
            config_from_dict({"kMeansClusteringColorSpace": "cmyk"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")

        with pytest.raises(InvalidInputError):
            load_config(path)
