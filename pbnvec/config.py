"""Run configuration for the paint-by-numbers pipeline."""
import json
import math
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from pbnvec.types import RGB, InvalidInputError


class ClusteringColorSpace(Enum):
    """Color space k-means runs in. Values match the settings file."""
    RGB = 0
    HSL = 1
    LAB = 2


ColorRestriction = Union[RGB, str]


@dataclass(frozen=True)
class OutputProfile:
    """Named rendering configuration producing one vector document."""
    name: str
    show_labels: bool = True
    fill_facets: bool = True
    show_borders: bool = True
    size_multiplier: float = 3
    font_size: float = 50
    font_color: str = "#333"
    filetype: str = "svg"  # "svg", "png" or "jpg"
    filetype_quality: int = 95

    def __post_init__(self):
        if not self.name:
            raise InvalidInputError("Output profile name must not be empty")
        if self.size_multiplier <= 0:
            raise InvalidInputError(
                f"Profile '{self.name}': size_multiplier must be > 0, got {self.size_multiplier}"
            )
        if self.font_size <= 0:
            raise InvalidInputError(
                f"Profile '{self.name}': font_size must be > 0, got {self.font_size}"
            )
        if self.filetype not in ("svg", "png", "jpg"):
            raise InvalidInputError(f"Profile '{self.name}': unknown filetype {self.filetype!r}")


def default_output_profiles() -> Tuple[OutputProfile, ...]:
    return (
        OutputProfile(name="full", show_labels=True, fill_facets=True, show_borders=True),
        OutputProfile(name="bordersLabels", show_labels=True, fill_facets=False, show_borders=True),
    )


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable per-run settings."""

    # Color quantization
    n_clusters: int = 16
    kmeans_min_delta: float = 1.0
    kmeans_max_iterations: int = 100
    color_space: ClusteringColorSpace = ClusteringColorSpace.RGB
    color_restrictions: Tuple[ColorRestriction, ...] = ()
    color_aliases: Mapping[str, RGB] = field(default_factory=dict)

    # Cleanup and facet reduction
    cleanup_runs: int = 3
    min_facet_size: int = 20
    remove_largest_first: bool = True
    max_facet_count: float = math.inf

    # Border smoothing
    border_halving_passes: int = 2

    # Input resizing
    resize_if_too_large: bool = True
    resize_width: int = 1024
    resize_height: int = 1024

    random_seed: int = 0

    output_profiles: Tuple[OutputProfile, ...] = field(default_factory=default_output_profiles)

    def __post_init__(self):
        """Reject impossible settings before any stage runs."""
        if self.n_clusters < 1:
            raise InvalidInputError(f"n_clusters must be >= 1, got {self.n_clusters}")
        if self.kmeans_min_delta < 0:
            raise InvalidInputError(f"kmeans_min_delta must be >= 0, got {self.kmeans_min_delta}")
        if self.kmeans_max_iterations < 1:
            raise InvalidInputError(
                f"kmeans_max_iterations must be >= 1, got {self.kmeans_max_iterations}"
            )
        if self.cleanup_runs < 0:
            raise InvalidInputError(f"cleanup_runs must be >= 0, got {self.cleanup_runs}")
        if self.min_facet_size < 0:
            raise InvalidInputError(f"min_facet_size must be >= 0, got {self.min_facet_size}")
        if self.max_facet_count < 1:
            raise InvalidInputError(f"max_facet_count must be >= 1, got {self.max_facet_count}")
        if self.border_halving_passes < 0:
            raise InvalidInputError(
                f"border_halving_passes must be >= 0, got {self.border_halving_passes}"
            )
        if self.resize_if_too_large and (self.resize_width < 1 or self.resize_height < 1):
            raise InvalidInputError(
                f"resize caps must be positive, got {self.resize_width}x{self.resize_height}"
            )
        if len(self.color_restrictions) > self.n_clusters:
            raise InvalidInputError(
                f"{len(self.color_restrictions)} restricted colors do not fit in "
                f"{self.n_clusters} clusters"
            )
        # Resolving validates alias names
        self.resolved_restrictions()

        names = [p.name for p in self.output_profiles]
        if len(set(names)) != len(names):
            raise InvalidInputError(f"Duplicate output profile names: {names}")

    def resolved_restrictions(self) -> Tuple[RGB, ...]:
        """Restricted colors as RGB triples, with alias names looked up."""
        resolved = []
        for restriction in self.color_restrictions:
            if isinstance(restriction, str):
                if restriction not in self.color_aliases:
                    raise InvalidInputError(f"Unknown color alias in restrictions: {restriction!r}")
                rgb = self.color_aliases[restriction]
            else:
                rgb = restriction
            if len(rgb) != 3 or any(not 0 <= int(c) <= 255 for c in rgb):
                raise InvalidInputError(f"Invalid restricted color: {restriction!r}")
            resolved.append((int(rgb[0]), int(rgb[1]), int(rgb[2])))
        return tuple(resolved)


# camelCase settings-file keys -> dataclass field names
_CONFIG_KEYS = {
    "kMeansNrOfClusters": "n_clusters",
    "kMeansMinDeltaDifference": "kmeans_min_delta",
    "kMeansMaxIterations": "kmeans_max_iterations",
    "kMeansClusteringColorSpace": "color_space",
    "kMeansColorRestrictions": "color_restrictions",
    "colorAliases": "color_aliases",
    "narrowPixelStripCleanupRuns": "cleanup_runs",
    "removeFacetsSmallerThanNrOfPoints": "min_facet_size",
    "removeFacetsFromLargeToSmall": "remove_largest_first",
    "maximumNumberOfFacets": "max_facet_count",
    "nrOfTimesToHalveBorderSegments": "border_halving_passes",
    "resizeImageIfTooLarge": "resize_if_too_large",
    "resizeImageWidth": "resize_width",
    "resizeImageHeight": "resize_height",
    "randomSeed": "random_seed",
    "outputProfiles": "output_profiles",
}

_PROFILE_KEYS = {
    "svgShowLabels": "show_labels",
    "svgFillFacets": "fill_facets",
    "svgShowBorders": "show_borders",
    "svgSizeMultiplier": "size_multiplier",
    "svgFontSize": "font_size",
    "svgFontColor": "font_color",
    "filetypeQuality": "filetype_quality",
}


def _parse_color_space(value: Any) -> ClusteringColorSpace:
    if isinstance(value, ClusteringColorSpace):
        return value
    try:
        if isinstance(value, str):
            return ClusteringColorSpace[value.upper()]
        return ClusteringColorSpace(int(value))
    except (KeyError, ValueError) as e:
        raise InvalidInputError(f"Unknown color space: {value!r}") from e


def _normalize_keys(data: Mapping[str, Any], key_map: Mapping[str, str], known: Sequence[str]) -> Dict[str, Any]:
    normalized = {}
    for key, value in data.items():
        name = key_map.get(key, key)
        if name not in known:
            raise InvalidInputError(f"Unknown setting: {key!r}")
        normalized[name] = value
    return normalized


def profile_from_dict(data: Mapping[str, Any]) -> OutputProfile:
    known = [f.name for f in fields(OutputProfile)]
    return OutputProfile(**_normalize_keys(data, _PROFILE_KEYS, known))


def config_from_dict(data: Mapping[str, Any], **overrides) -> PipelineConfig:
    """Build a config from a settings mapping (camelCase or snake_case keys)."""
    known = [f.name for f in fields(PipelineConfig)]
    values = _normalize_keys(data, _CONFIG_KEYS, known)
    values.update({k: v for k, v in overrides.items() if v is not None})

    if "color_space" in values:
        values["color_space"] = _parse_color_space(values["color_space"])
    if "color_restrictions" in values:
        values["color_restrictions"] = tuple(
            r if isinstance(r, str) else tuple(r) for r in values["color_restrictions"]
        )
    if "color_aliases" in values:
        values["color_aliases"] = {k: tuple(v) for k, v in values["color_aliases"].items()}
    if "output_profiles" in values:
        values["output_profiles"] = tuple(
            p if isinstance(p, OutputProfile) else profile_from_dict(p)
            for p in values["output_profiles"]
        )
    return PipelineConfig(**values)


def load_config(path: Union[str, Path], **overrides) -> PipelineConfig:
    """Load a JSON settings file.

    Args:
        path: Path to the settings file
        **overrides: Field values taking precedence over the file (None is ignored)

    Returns:
        Validated PipelineConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidInputError: If the file is malformed or holds invalid settings
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Settings file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidInputError(f"Settings file {path} must contain a JSON object")
    return config_from_dict(data, **overrides)


def merge_overrides(config: Optional[PipelineConfig], **overrides) -> PipelineConfig:
    """Return ``config`` (or the defaults) with non-None overrides applied."""
    base = {f.name: getattr(config, f.name) for f in fields(PipelineConfig)} if config else {}
    base.update({k: v for k, v in overrides.items() if v is not None})
    return PipelineConfig(**base)
