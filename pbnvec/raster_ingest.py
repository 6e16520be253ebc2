"""Raster image decoding into the pixel buffer the pipeline consumes."""
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image
from PIL import ImageOps

from pbnvec.types import InvalidInputError, PixelBuffer, VectorizationError


def load_pixels(path: Union[str, Path]) -> PixelBuffer:
    """
    Decode a raster image file into an (H, W, 4) uint8 RGBA buffer.

    EXIF orientation is applied so the buffer matches how the image is shown.

    Args:
        path: Path to image file

    Returns:
        RGBA pixel buffer

    Raises:
        FileNotFoundError: If file doesn't exist
        VectorizationError: If file cannot be decoded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    if not path.is_file():
        raise VectorizationError(f"Path is not a file: {path}")

    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            return np.array(img.convert('RGBA'), dtype=np.uint8)
    except (IOError, OSError) as e:
        raise VectorizationError(f"Failed to load image {path}: {e}") from e


def pixels_from_array(image: np.ndarray) -> PixelBuffer:
    """
    Normalize an in-memory image to an (H, W, 3|4) uint8 buffer.

    Grayscale input is expanded to RGB and float input in [0, 1] is scaled
    to 0-255.

    Raises:
        InvalidInputError: If the array cannot be interpreted as an image
    """
    if not isinstance(image, np.ndarray):
        raise InvalidInputError("Pixel buffer must be a numpy array")

    if image.ndim == 2:
        image = np.stack([image] * 3, axis=-1)

    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise InvalidInputError(f"Expected (H, W), (H, W, 3) or (H, W, 4) array, got {image.shape}")

    if image.dtype == np.uint8:
        return image

    if np.issubdtype(image.dtype, np.floating) and image.size and image.max() <= 1.0:
        image = image * 255.0

    return np.clip(np.rint(image), 0, 255).astype(np.uint8)
