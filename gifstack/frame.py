# gifstack - Frames
"""
Frame containers flowing through the compositing pipeline.

Pixel buffers are ``uint8`` numpy arrays of shape ``(height, width, 4)`` in
RGBA channel order. Delays use the GIF's native unit, hundredths of a second.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

import numpy as np


@dataclass
class Frame:
    """One decoded frame of a layer.

    :ivar pixels: RGBA pixel buffer of shape (height, width, 4)
    :ivar delay: Display time in hundredths of a second
    :ivar index: Position of the frame within its layer
    """

    pixels: np.ndarray
    delay: int = 0
    index: int = 0

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def duration_ms(self) -> int:
        """Display time in milliseconds."""
        return self.delay * 10


@dataclass
class FrameSet:
    """One frame from every layer for a single iteration, bottom to top."""

    index: int = 0
    frames: list[Frame] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    def __getitem__(self, index: int) -> Frame:
        return self.frames[index]

    @property
    def delays(self) -> list[int]:
        """Delay of each frame, in layer order."""
        return [frame.delay for frame in self.frames]


@dataclass
class CompositeFrame:
    """The flattened result of one iteration.

    :ivar pixels: Merged RGBA pixel buffer
    :ivar delay: The delay shared by all frames of the iteration
    :ivar index: Iteration number, starting at 0
    :ivar layer_count: Number of layers merged into this frame
    """

    pixels: np.ndarray
    delay: int = 0
    index: int = 0
    layer_count: int = 0

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def duration_ms(self) -> int:
        """Display time in milliseconds."""
        return self.delay * 10


__all__ = ["Frame", "FrameSet", "CompositeFrame"]
