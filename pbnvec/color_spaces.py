"""Color-space strategies for k-means clustering.

Each strategy maps RGB (0-255) samples into the space clustering runs in,
back again, and provides the distance and averaging used by k-means.
"""
from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np
from skimage.color import lab2rgb, rgb2lab

from pbnvec.config import ClusteringColorSpace
from pbnvec.types import InvalidInputError


def _euclidean(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Pairwise distances between rows of a (N, 3) and b (K, 3) -> (N, K)."""
    diff = a[:, None, :] - b[None, :, :]
    return np.sqrt(np.einsum("nkc,nkc->nk", diff, diff))


def _weighted_mean(points: np.ndarray, weights: np.ndarray) -> np.ndarray:
    return np.average(points, axis=0, weights=weights)


def _rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    return rgb2lab(rgb.reshape(-1, 1, 3) / 255.0).reshape(-1, 3)


def _lab_to_rgb(lab: np.ndarray) -> np.ndarray:
    return lab2rgb(lab.reshape(-1, 1, 3)).reshape(-1, 3) * 255.0


@dataclass(frozen=True)
class ColorSpaceStrategy:
    """Conversion, distance and averaging for one clustering color space."""
    name: str
    to_space: Callable[[np.ndarray], np.ndarray]
    from_space: Callable[[np.ndarray], np.ndarray]
    distance: Callable[[np.ndarray, np.ndarray], np.ndarray] = _euclidean
    average: Callable[[np.ndarray, np.ndarray], np.ndarray] = _weighted_mean


_STRATEGIES: Dict[ClusteringColorSpace, ColorSpaceStrategy] = {
    ClusteringColorSpace.RGB: ColorSpaceStrategy(
        name="rgb",
        to_space=lambda rgb: rgb.astype(np.float64),
        from_space=lambda values: values,
    ),
    ClusteringColorSpace.LAB: ColorSpaceStrategy(
        name="lab",
        to_space=_rgb_to_lab,
        from_space=_lab_to_rgb,
    ),
}


def get_color_space(color_space: ClusteringColorSpace) -> ColorSpaceStrategy:
    """Look up the strategy for a color space.

    Raises:
        InvalidInputError: If the color space has no distance metric defined
    """
    try:
        return _STRATEGIES[color_space]
    except KeyError:
        raise InvalidInputError(
            f"Color space {color_space.name} has no clustering strategy; "
            f"supported: {', '.join(s.name for s in _STRATEGIES)}"
        ) from None
