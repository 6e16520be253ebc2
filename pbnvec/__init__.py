"""pbnvec: paint-by-numbers templates from raster images.

Quantizes an image into a small palette, splits it into single-color
facets, traces and smooths their borders, places numeric labels and
renders the result as SVG.
"""
from pbnvec.config import ClusteringColorSpace, OutputProfile, PipelineConfig, load_config
from pbnvec.pipeline import PaintByNumbersPipeline, PipelineResult, process_image
from pbnvec.progress import CancellationToken, ProgressEvent
from pbnvec.types import (
    BorderTraceError,
    Facet,
    FacetResult,
    InvalidInputError,
    PipelineCancelled,
    PipelineWarning,
    VectorizationError,
    WarningKind,
)

__version__ = "0.1.0"
__all__ = [
    "ClusteringColorSpace",
    "OutputProfile",
    "PipelineConfig",
    "load_config",
    "PaintByNumbersPipeline",
    "PipelineResult",
    "process_image",
    "CancellationToken",
    "ProgressEvent",
    "BorderTraceError",
    "Facet",
    "FacetResult",
    "InvalidInputError",
    "PipelineCancelled",
    "PipelineWarning",
    "VectorizationError",
    "WarningKind",
]
