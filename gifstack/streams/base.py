"""Base stream classes for gifstack.

This module defines the LayerStream abstract base class: a pull-based frame
source with fixed geometry that the pipeline advances one frame at a time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gifstack.frame import Frame


class LayerStream(ABC):
    """Base class for all layer sources.

    A layer has a fixed width and height for its whole lifetime and hands
    out its frames in order through :meth:`pull_frame`. Once exhausted it
    keeps returning None.

    Example:
        class SolidLayer(LayerStream):
            def __init__(self, pixels, count):
                super().__init__(name='solid')
                self._pixels = pixels
                self._count = count

            @property
            def width(self) -> int:
                return self._pixels.shape[1]

            @property
            def height(self) -> int:
                return self._pixels.shape[0]

            def _read_frame(self) -> Frame | None:
                if self.frames_read >= self._count:
                    return None
                return Frame(self._pixels, delay=10, index=self.frames_read)
    """

    def __init__(self, name: str = "") -> None:
        """Initialize the stream.

        :param name: Human readable name used in diagnostics, e.g. a path
        """
        self.name = name
        self.frames_read: int = 0
        self._exhausted: bool = False

    # -------------------------------------------------------------------------
    # Abstract Interface
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def width(self) -> int:
        """Canvas width in pixels."""
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        """Canvas height in pixels."""
        ...

    @abstractmethod
    def _read_frame(self) -> "Frame | None":
        """Decode the next frame.

        :return: The frame or None at end of stream
        """
        ...

    # -------------------------------------------------------------------------
    # Frame Access
    # -------------------------------------------------------------------------

    @property
    def is_exhausted(self) -> bool:
        """Whether the end of the stream has been reached."""
        return self._exhausted

    def pull_frame(self) -> "Frame | None":
        """Advance the cursor and return the next frame.

        :return: The next frame, or None once the stream is exhausted
        """
        if self._exhausted:
            return None
        frame = self._read_frame()
        if frame is None:
            self._exhausted = True
            return None
        self.frames_read += 1
        return frame

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Release decoder resources. Subclasses should call super().close()."""
        self._exhausted = True

    def __enter__(self) -> "LayerStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.width}x{self.height})"
