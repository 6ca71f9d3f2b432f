"""
Pytest fixtures for gifstack tests

Test GIFs are generated in memory from small character maps, one string per
pixel row::

    "R."  ->  red pixel, transparent pixel
"""

import io

import numpy as np
import PIL.Image
import pytest

COLORS = {
    ".": (0, 0, 0, 0),
    "R": (255, 0, 0, 255),
    "G": (0, 255, 0, 255),
    "B": (0, 0, 255, 255),
    "W": (255, 255, 255, 255),
}
"Character codes used in frame maps and their RGBA value"

TRANSPARENT_INDEX = 0


def _rows_to_rgba(rows: list[str]) -> np.ndarray:
    return np.array([[COLORS[c] for c in row] for row in rows], dtype=np.uint8)


def _rows_to_indices(rows: list[str]) -> np.ndarray:
    codes = list(COLORS)
    return np.array([[codes.index(c) for c in row] for row in rows], dtype=np.uint8)


@pytest.fixture
def rgba():
    """Returns a function converting a frame map to an RGBA buffer."""
    return _rows_to_rgba


@pytest.fixture
def make_gif():
    """
    Returns a function encoding frame maps as an animated GIF with Pillow.

    Consecutive frames must differ and every frame after the first needs at
    least one opaque pixel, otherwise Pillow's writer merges or drops them.
    """

    def _make_gif(frames: list[list[str]], delay: int | list[int] = 10) -> bytes:
        palette = [channel for color in COLORS.values() for channel in color[:3]]
        images = []
        for rows in frames:
            indices = _rows_to_indices(rows)
            image = PIL.Image.frombytes(
                "P", (indices.shape[1], indices.shape[0]), indices.tobytes()
            )
            image.putpalette(palette)
            images.append(image)
        if isinstance(delay, list):
            duration = [d * 10 for d in delay]
        else:
            duration = delay * 10
        buffer = io.BytesIO()
        images[0].save(
            buffer,
            format="GIF",
            save_all=True,
            append_images=images[1:],
            duration=duration,
            loop=0,
            transparency=TRANSPARENT_INDEX,
            disposal=2,
            optimize=False,
        )
        return buffer.getvalue()

    return _make_gif


@pytest.fixture
def read_gif():
    """
    Returns a function decoding GIF bytes with Pillow.

    The function returns a tuple of the opened image, the RGBA buffers of all
    frames and their durations in milliseconds.
    """

    def _read_gif(data: bytes):
        image = PIL.Image.open(io.BytesIO(data))
        frames = []
        durations = []
        for index in range(image.n_frames):
            image.seek(index)
            frames.append(np.array(image.convert("RGBA"), dtype=np.uint8))
            durations.append(image.info.get("duration", 0))
        return image, frames, durations

    return _read_gif
