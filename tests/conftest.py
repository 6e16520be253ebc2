"""Shared fixtures for pbnvec tests."""
import numpy as np
import pytest

from pbnvec.config import OutputProfile

from helpers import BLUE, GREEN, RED, YELLOW


@pytest.fixture
def uniform_2x2():
    """2x2 image of one color."""
    return np.full((2, 2, 3), RED, dtype=np.uint8)


@pytest.fixture
def checkerboard_4x4():
    """4x4 black and white checkerboard."""
    ys, xs = np.indices((4, 4))
    image = np.zeros((4, 4, 3), dtype=np.uint8)
    image[(ys + xs) % 2 == 1] = 255
    return image


@pytest.fixture
def quadrants():
    """20x20 image with four solid quadrants: red, green / blue, yellow."""
    image = np.zeros((20, 20, 3), dtype=np.uint8)
    image[:10, :10] = RED
    image[:10, 10:] = GREEN
    image[10:, :10] = BLUE
    image[10:, 10:] = YELLOW
    return image


@pytest.fixture
def blocks():
    """16x16 scene: blue background, red and green rectangles, a yellow speck."""
    image = np.zeros((16, 16, 3), dtype=np.uint8)
    image[:] = BLUE
    image[2:8, 2:10] = RED
    image[9:15, 5:14] = GREEN
    image[12, 1] = YELLOW
    return image


@pytest.fixture
def noisy_blocks(blocks):
    """Blocks scene with seeded per-pixel noise, giving many distinct colors."""
    rng = np.random.default_rng(42)
    noise = rng.integers(-12, 13, size=blocks.shape)
    return np.clip(blocks.astype(int) + noise, 0, 255).astype(np.uint8)


@pytest.fixture
def random_indices():
    """24x24 palette index image with 3 colors and lots of small regions."""
    rng = np.random.default_rng(7)
    return rng.integers(0, 3, size=(24, 24)).astype(np.int32)


@pytest.fixture
def outline_profile():
    return OutputProfile(name="outline", show_labels=False, fill_facets=False, show_borders=True)
