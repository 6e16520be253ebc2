"""Color reduction: seeded k-means palette quantization and narrow strip cleanup."""
import logging
from typing import Dict, List, Optional, Tuple

import numpy as np
from sklearn.cluster import kmeans_plusplus

from pbnvec.color_spaces import ColorSpaceStrategy, get_color_space
from pbnvec.config import PipelineConfig
from pbnvec.progress import ProgressCallback
from pbnvec.types import (
    RGB,
    ColorMapResult,
    InvalidInputError,
    PipelineWarning,
    PixelBuffer,
    WarningKind,
)

logger = logging.getLogger(__name__)

# Rows per distance block when assigning samples to centroids
ASSIGN_CHUNK = 65536


def validate_pixels(pixels: PixelBuffer) -> None:
    """Check the buffer is a non-empty (H, W, 3|4) array.

    Raises:
        InvalidInputError: If the buffer is empty or malformed
    """
    if not isinstance(pixels, np.ndarray):
        raise InvalidInputError("Pixel buffer must be a numpy array")
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise InvalidInputError(f"Pixel buffer must be (H, W, 3|4), got shape {pixels.shape}")
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise InvalidInputError(f"Pixel buffer has zero area: {pixels.shape[1]}x{pixels.shape[0]}")


def _assign(samples: np.ndarray, centroids: np.ndarray, strategy: ColorSpaceStrategy) -> np.ndarray:
    """Index of the nearest centroid for every sample (ties go to the lowest index)."""
    labels = np.empty(len(samples), dtype=np.int32)
    for start in range(0, len(samples), ASSIGN_CHUNK):
        block = samples[start:start + ASSIGN_CHUNK]
        labels[start:start + ASSIGN_CHUNK] = np.argmin(strategy.distance(block, centroids), axis=1)
    return labels


def _initial_centroids(
    samples: np.ndarray,
    weights: np.ndarray,
    n_free: int,
    seed: int,
) -> np.ndarray:
    if n_free == 0:
        return np.empty((0, samples.shape[1]))
    # sklearn only accepts 32-bit seeds
    centers, _ = kmeans_plusplus(
        samples,
        n_clusters=n_free,
        sample_weight=weights.astype(np.float64),
        random_state=seed % (2 ** 32),
    )
    return centers


def kmeans(
    samples: np.ndarray,
    weights: np.ndarray,
    pinned: np.ndarray,
    n_clusters: int,
    strategy: ColorSpaceStrategy,
    min_delta: float,
    max_iterations: int,
    seed: int,
    on_progress: Optional[ProgressCallback] = None,
) -> Tuple[np.ndarray, np.ndarray, bool]:
    """Weighted k-means with optional pinned centroids.

    Pinned centroids occupy the first rows and never move. The remaining
    centroids start from seeded k-means++ and are recomputed as the weighted
    mean of their members until the largest centroid displacement is at or
    below ``min_delta`` or ``max_iterations`` is reached.

    Returns:
        Tuple of (centroids, labels, converged)
    """
    n_free = min(n_clusters - len(pinned), len(samples))
    centroids = np.vstack([pinned.reshape(-1, samples.shape[1]),
                           _initial_centroids(samples, weights, n_free, seed)])
    n_pinned = len(pinned)

    converged = n_free == 0
    iteration = 0
    while not converged and iteration < max_iterations:
        iteration += 1
        labels = _assign(samples, centroids, strategy)

        updated = centroids.copy()
        for c in range(n_pinned, len(centroids)):
            members = labels == c
            if weights[members].sum() > 0:
                updated[c] = strategy.average(samples[members], weights[members])

        # Displacement of each centroid, measured the way samples are assigned
        moved = np.diagonal(strategy.distance(updated, centroids))
        delta = float(np.max(moved)) if len(centroids) else 0.0
        centroids = updated
        logger.debug(f"k-means iteration {iteration}: delta={delta:.4f}")
        if on_progress is not None:
            on_progress(delta)
        converged = delta <= min_delta

    return centroids, _assign(samples, centroids, strategy), converged


def create_color_map(cluster_indices: np.ndarray, cluster_colors: List[RGB]) -> ColorMapResult:
    """Number the colors of a clustered image by first appearance in scan order.

    Clusters that no pixel uses are dropped, and clusters rounding to the
    same RGB triple share one palette index.
    """
    height, width = cluster_indices.shape
    flat = cluster_indices.reshape(-1)
    used, first_seen = np.unique(flat, return_index=True)
    order = used[np.argsort(first_seen, kind="stable")]

    mapping = np.full(max(len(cluster_colors), 1), -1, dtype=np.int32)
    colors_by_index: List[RGB] = []
    index_by_color: Dict[RGB, int] = {}
    for cluster in order:
        color = cluster_colors[cluster]
        if color not in index_by_color:
            index_by_color[color] = len(colors_by_index)
            colors_by_index.append(color)
        mapping[cluster] = index_by_color[color]

    return ColorMapResult(
        img_color_indices=mapping[cluster_indices].astype(np.int32),
        colors_by_index=colors_by_index,
        width=width,
        height=height,
    )


def cluster(
    pixels: PixelBuffer,
    config: PipelineConfig,
    on_progress: Optional[ProgressCallback] = None,
    warnings: Optional[List[PipelineWarning]] = None,
) -> ColorMapResult:
    """Quantize a pixel buffer into a bounded palette.

    Clustering runs over the distinct colors of the image weighted by how
    many pixels carry them, so identical buffers and seeds give identical
    palettes and assignments.

    Args:
        pixels: (H, W, 3|4) uint8 buffer; alpha is ignored
        config: Run configuration
        on_progress: Called once per iteration with the centroid delta
        warnings: Receives a CLUSTERING_NON_CONVERGENCE warning when the
            iteration cap is hit

    Returns:
        ColorMapResult with per-pixel palette indices

    Raises:
        InvalidInputError: If the buffer or color space is invalid
    """
    validate_pixels(pixels)
    strategy = get_color_space(config.color_space)
    height, width = pixels.shape[:2]

    rgb = np.clip(pixels[..., :3], 0, 255).astype(np.uint8).reshape(-1, 3)
    colors, inverse, counts = np.unique(rgb, axis=0, return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)
    logger.info(f"Clustering {len(colors)} distinct colors into {config.n_clusters} clusters")

    restricted = config.resolved_restrictions()
    samples = strategy.to_space(colors.astype(np.float64))
    pinned = (strategy.to_space(np.array(restricted, dtype=np.float64))
              if restricted else np.empty((0, samples.shape[1])))

    centroids, labels, converged = kmeans(
        samples,
        counts,
        pinned,
        config.n_clusters,
        strategy,
        config.kmeans_min_delta,
        config.kmeans_max_iterations,
        config.random_seed,
        on_progress,
    )

    if not converged:
        message = (f"k-means did not converge within {config.kmeans_max_iterations} "
                   f"iterations; using best-effort palette")
        logger.warning(message)
        if warnings is not None:
            warnings.append(PipelineWarning(WarningKind.CLUSTERING_NON_CONVERGENCE, "clustering", message))

    rgb_centroids = np.clip(np.rint(strategy.from_space(centroids)), 0, 255).astype(int)
    cluster_colors: List[RGB] = [tuple(int(v) for v in c) for c in rgb_centroids]
    # Pinned clusters report their exact restricted color
    for i, color in enumerate(restricted):
        cluster_colors[i] = color

    cluster_indices = labels[inverse].reshape(height, width)
    return create_color_map(cluster_indices, cluster_colors)


def _shifted(a: np.ndarray, dy: int, dx: int) -> np.ndarray:
    """Value at (y + dy, x + dx) for every (y, x); -1 outside the image."""
    out = np.full_like(a, -1)
    h, w = a.shape
    ys, yd = (slice(dy, h), slice(0, h - dy)) if dy >= 0 else (slice(0, h + dy), slice(-dy, h))
    xs, xd = (slice(dx, w), slice(0, w - dx)) if dx >= 0 else (slice(0, w + dx), slice(-dx, w))
    out[yd, xd] = a[ys, xs]
    return out


def _strip_candidates(idx: np.ndarray, axis: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Pixels in a one or two pixel run across ``axis``, with the two flanking colors."""
    step = (1, 0) if axis == 0 else (0, 1)
    before = _shifted(idx, -step[0], -step[1])
    after = _shifted(idx, step[0], step[1])
    before2 = _shifted(idx, -2 * step[0], -2 * step[1])
    after2 = _shifted(idx, 2 * step[0], 2 * step[1])

    single = (before >= 0) & (after >= 0) & (idx != before) & (idx != after)
    # First and second pixel of a two-pixel run
    first = (before >= 0) & (after2 >= 0) & (idx != before) & (after == idx) & (after2 != idx)
    second = (after >= 0) & (before2 >= 0) & (idx != after) & (before == idx) & (before2 != idx)

    low = np.where(single | first, before, before2)
    high = np.where(single | second, after, after2)
    return single | first | second, low, high


def process_narrow_pixel_strip_cleanup(color_map: ColorMapResult) -> int:
    """Absorb one and two pixel wide strips into a neighbouring color, in place.

    A pixel whose run across a row or column is at most two pixels long,
    flanked by other colors on both sides, takes whichever flanking color is
    closest to its own. Pixels are visited in two checkerboard halves so no
    two updated pixels in one half are neighbours.

    Returns:
        Number of pixels reassigned
    """
    idx = color_map.img_color_indices
    palette = np.array(color_map.colors_by_index, dtype=np.float64)
    color_distance = np.linalg.norm(palette[:, None, :] - palette[None, :, :], axis=2)
    ys, xs = np.indices(idx.shape)
    parity = (ys + xs) % 2

    changed = 0
    for half in (0, 1):
        vertical, top, bottom = _strip_candidates(idx, axis=0)
        horizontal, left, right = _strip_candidates(idx, axis=1)
        horizontal &= ~vertical

        replacement = np.full_like(idx, -1)
        for mask, low, high in ((vertical, top, bottom), (horizontal, left, right)):
            mask = mask & (parity == half)
            cur = idx[mask]
            a, b = low[mask], high[mask]
            replacement[mask] = np.where(color_distance[cur, a] <= color_distance[cur, b], a, b)

        update = replacement >= 0
        idx[update] = replacement[update]
        changed += int(update.sum())

    logger.debug(f"Narrow strip cleanup reassigned {changed} pixels")
    return changed
