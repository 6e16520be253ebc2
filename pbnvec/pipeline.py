"""Main pipeline orchestrator for pbnvec."""
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import numpy as np
from PIL import Image

from pbnvec.border_segmentation import segment_borders
from pbnvec.border_tracing import trace_borders
from pbnvec.color_reduction import cluster, process_narrow_pixel_strip_cleanup, validate_pixels
from pbnvec.config import PipelineConfig
from pbnvec.facet_creation import extract_facets
from pbnvec.facet_reduction import reduce_facets
from pbnvec.label_placement import place_labels
from pbnvec.palette import build_palette
from pbnvec.progress import CancellationToken, ProgressEvent, StageProgress
from pbnvec.raster_ingest import load_pixels, pixels_from_array
from pbnvec.svg_export import VectorDocument, render_svg
from pbnvec.types import (
    ColorMapResult,
    FacetResult,
    PaletteEntry,
    PipelineWarning,
    PixelBuffer,
    VectorizationError,
)

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything one run produces."""
    color_map: ColorMapResult
    facet_result: FacetResult
    documents: Dict[str, VectorDocument]
    palette: List[PaletteEntry]
    warnings: List[PipelineWarning] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)


def resize_if_too_large(pixels: PixelBuffer, config: PipelineConfig) -> PixelBuffer:
    """Shrink the buffer to fit the configured caps, keeping the aspect ratio."""
    height, width = pixels.shape[:2]
    if not config.resize_if_too_large or (width <= config.resize_width and height <= config.resize_height):
        return pixels

    new_width, new_height = float(width), float(height)
    if new_width > config.resize_width:
        new_height = new_height / new_width * config.resize_width
        new_width = config.resize_width
    if new_height > config.resize_height:
        new_width = new_width / new_height * config.resize_height
        new_height = config.resize_height
    size = (max(1, int(round(new_width))), max(1, int(round(new_height))))

    image = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
    resized = image.resize(size, Image.Resampling.BILINEAR)
    logger.info(f"Resized image from {width}x{height} to {size[0]}x{size[1]}")
    return np.asarray(resized)


class PaintByNumbersPipeline:
    """Runs the stages in order on one pixel buffer."""

    def __init__(self, config: Optional[PipelineConfig] = None):
        """Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration. Uses defaults if None.
        """
        self.config = config or PipelineConfig()

    def process(
        self,
        pixels: PixelBuffer,
        on_progress: Optional[Callable[[ProgressEvent], None]] = None,
        token: Optional[CancellationToken] = None,
    ) -> PipelineResult:
        """Turn a pixel buffer into facets, SVG documents and a palette summary.

        Args:
            pixels: (H, W, 3|4) uint8 buffer, left untouched
            on_progress: Receives ProgressEvents between stage steps
            token: Cancellation token sampled at every progress callback

        Returns:
            PipelineResult with one document per output profile

        Raises:
            InvalidInputError: If the buffer is empty or malformed
            BorderTraceError: If facet labeling produced an inconsistent border
            PipelineCancelled: If the token was cancelled
            VectorizationError: If any stage fails unexpectedly
        """
        pixels = pixels_from_array(pixels)
        validate_pixels(pixels)
        config = self.config
        progress = StageProgress(on_progress, token)
        warnings: List[PipelineWarning] = []
        timings: Dict[str, float] = {}

        def run_stage(name: str, fn, *args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            except VectorizationError:
                raise
            except Exception as e:
                raise VectorizationError(f"Stage '{name}' failed: {e}") from e
            finally:
                timings[name] = timings.get(name, 0.0) + time.perf_counter() - start

        pixels = run_stage("resize", resize_if_too_large, pixels, config)
        height, width = pixels.shape[:2]

        logger.info("Running k-means clustering")
        color_map = run_stage("clustering", cluster, pixels, config,
                              progress.for_stage("clustering"), warnings)
        logger.info(f"Palette has {len(color_map.colors_by_index)} colors")

        facet_result = None
        runs = max(1, config.cleanup_runs)
        # Each run rebuilds facets from scratch; only the last run's warnings survive
        for run in range(runs):
            run_warnings: List[PipelineWarning] = []
            if config.cleanup_runs > 0:
                logger.info(f"Removing narrow pixels run #{run + 1}")
                run_stage("narrow_pixel_cleanup", process_narrow_pixel_strip_cleanup, color_map)
                progress.for_stage("narrow_pixel_cleanup")((run + 1) / runs)

            logger.info("Creating facets")
            facet_result = run_stage("facet_creation", extract_facets, width, height,
                                     color_map.img_color_indices, progress.for_stage("facet_creation"))

            logger.info("Reducing facets")
            run_stage("facet_reduction", reduce_facets,
                      config.min_facet_size,
                      config.remove_largest_first,
                      config.max_facet_count,
                      color_map.colors_by_index,
                      facet_result,
                      color_map.img_color_indices,
                      progress.for_stage("facet_reduction"),
                      run_warnings)
            if run == runs - 1:
                warnings.extend(run_warnings)

        logger.info("Build border paths")
        run_stage("border_tracing", trace_borders, facet_result, progress.for_stage("border_tracing"))

        logger.info("Build border path segments")
        run_stage("border_segmentation", segment_borders, facet_result,
                  config.border_halving_passes, progress.for_stage("border_segmentation"))

        logger.info("Determine label placement")
        run_stage("label_placement", place_labels, facet_result,
                  progress.for_stage("label_placement"), warnings)

        documents: Dict[str, VectorDocument] = {}
        for profile in config.output_profiles:
            logger.info(f"Generating output for {profile.name}")
            documents[profile.name] = run_stage("rendering", render_svg, facet_result,
                                                color_map.colors_by_index, profile)
            progress.for_stage("rendering")(len(documents) / len(config.output_profiles))

        logger.info("Generating palette info")
        palette = build_palette(facet_result, color_map.colors_by_index, config.color_aliases)

        if warnings:
            logger.info(f"Run finished with {len(warnings)} warnings")
        return PipelineResult(
            color_map=color_map,
            facet_result=facet_result,
            documents=documents,
            palette=palette,
            warnings=warnings,
            timings=timings,
        )


def process_image(
    image_path: Union[str, Path],
    config: Optional[PipelineConfig] = None,
    on_progress: Optional[Callable[[ProgressEvent], None]] = None,
) -> PipelineResult:
    """Decode an image file and run the pipeline on it.

    Convenience function for one-off processing.

    Example:
        >>> result = process_image("input.jpg")
        >>> result.documents["full"].save("full.svg")
    """
    pipeline = PaintByNumbersPipeline(config)
    return pipeline.process(load_pixels(image_path), on_progress=on_progress)
