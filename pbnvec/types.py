"""Core types for the paint-by-numbers pipeline."""
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Set, Tuple

import numpy as np

# Type aliases
RGB = Tuple[int, int, int]
PixelBuffer = np.ndarray


@dataclass(frozen=True)
class Point:
    """2D point. Border points live in wall coordinates (pixel +/- 0.5)."""
    x: float
    y: float


@dataclass
class BoundingBox:
    """Inclusive pixel bounding box."""
    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def area(self) -> int:
        return self.width * self.height

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def slices(self) -> Tuple[slice, slice]:
        """Row/column slices selecting the box from an (H, W) array."""
        return slice(self.min_y, self.max_y + 1), slice(self.min_x, self.max_x + 1)


@dataclass
class LabelBounds:
    """Axis-aligned label rectangle in wall coordinates."""
    min_x: float
    min_y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.min_x + self.width

    @property
    def max_y(self) -> float:
        return self.min_y + self.height


@dataclass
class ColorMapResult:
    """Quantized image: one palette index per pixel plus the palette."""
    img_color_indices: np.ndarray  # (H, W) int32, mutated by cleanup and reduction
    colors_by_index: List[RGB]
    width: int
    height: int


@dataclass
class BoundarySegment:
    """Part of a facet border shared with a single neighbour.

    ``neighbour`` is -1 for the image edge. ``points`` run in the
    facet's own walking direction, from one junction vertex to the next.
    """
    points: List[Point]
    neighbour: int


@dataclass
class Facet:
    """Maximal 4-connected region of pixels sharing one palette index."""
    id: int
    color_index: int
    point_count: int
    bbox: BoundingBox
    neighbours: Set[int] = field(default_factory=set)
    border_path: List[Point] = field(default_factory=list)
    border_segments: List[BoundarySegment] = field(default_factory=list)
    label_bounds: Optional[LabelBounds] = None
    label_degraded: bool = False

    def get_full_path_from_border_segments(self) -> List[Point]:
        """Concatenate the (possibly halved) border segments into a closed path."""
        path: List[Point] = []
        for segment in self.border_segments:
            if path and path[-1] == segment.points[0]:
                path.extend(segment.points[1:])
            else:
                path.extend(segment.points)
        if path and path[0] != path[-1]:
            path.append(path[0])
        return path


@dataclass
class FacetResult:
    """Arena of facets indexed by stable id; removed slots hold None."""
    width: int
    height: int
    facets: List[Optional[Facet]]
    facet_map: np.ndarray  # (H, W) int32 facet id per pixel

    def live_facets(self) -> List[Facet]:
        return [f for f in self.facets if f is not None]

    @property
    def facet_count(self) -> int:
        return sum(1 for f in self.facets if f is not None)


@dataclass
class PaletteEntry:
    """Palette color with the pixel area it covers in the final facets."""
    index: int
    color: RGB
    frequency: int
    area_percentage: float
    alias: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "index": self.index,
            "color": list(self.color),
            "frequency": self.frequency,
            "areaPercentage": self.area_percentage,
            "colorAlias": self.alias,
        }


class WarningKind(Enum):
    """Non-fatal conditions accumulated during a run."""
    CLUSTERING_NON_CONVERGENCE = auto()
    FACET_REDUCTION_EXHAUSTED = auto()
    LABEL_PLACEMENT_DEGRADED = auto()


@dataclass
class PipelineWarning:
    """A recorded non-fatal condition."""
    kind: WarningKind
    stage: str
    message: str
    facet_id: Optional[int] = None


class VectorizationError(Exception):
    """Base exception for vectorization errors."""
    pass


class InvalidInputError(VectorizationError):
    """Raised for an empty pixel buffer or an impossible configuration."""
    pass


class BorderTraceError(VectorizationError):
    """Raised when a facet border is not a single closed simple loop."""

    def __init__(self, message: str, stage: str = "border_tracing", facet_id: Optional[int] = None):
        super().__init__(f"[{stage}] facet {facet_id}: {message}")
        self.stage = stage
        self.facet_id = facet_id


class PipelineCancelled(VectorizationError):
    """Raised when a run is cancelled between stage steps."""
    pass
