"""Exception classes for the compositing pipeline.

Every error is fatal for the pipeline run that raised it. The driver turns
them into an aborted :class:`gifstack.pipeline.PipelineResult` so callers can
inspect the cause instead of the process terminating.
"""

from __future__ import annotations


class GifStackError(Exception):
    """Base exception for all compositing failures."""

    pass


class StartupError(GifStackError):
    """Raised before the first frame when the inputs cannot form a pipeline.

    Covers unreadable inputs, non-GIF data, unparsable headers, too few
    inputs and width/height disagreement.
    """

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class StructuralMismatchError(GifStackError):
    """Raised mid-pipeline when layers disagree in frame count or delay."""

    pass


class UnsupportedAlphaError(GifStackError):
    """Raised when a pixel is neither fully opaque nor fully transparent."""

    def __init__(self, alpha: int, x: int, y: int, layer: int | None = None):
        where = f"pixel ({x}, {y})"
        if layer is not None:
            where = f"layer {layer}, {where}"
        super().__init__(f"Can't handle alpha value of {alpha} at {where}")
        self.alpha = alpha
        self.x = x
        self.y = y
        self.layer = layer


class FrameDecodeError(GifStackError):
    """Raised when frame data inside an input is malformed."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class EncodingError(GifStackError):
    """Raised when a composite frame cannot be serialized or written."""

    pass


__all__ = [
    "GifStackError",
    "StartupError",
    "StructuralMismatchError",
    "UnsupportedAlphaError",
    "FrameDecodeError",
    "EncodingError",
]
