"""
gifstack - Flatten layered animated GIFs into a single animation
"""

from .exceptions import (
    GifStackError,
    StartupError,
    StructuralMismatchError,
    UnsupportedAlphaError,
    FrameDecodeError,
    EncodingError,
)
from .uniformity import NonUniformError, get_all_same, is_uniform
from .frame import Frame, FrameSet, CompositeFrame
from .compositor import OPAQUE, TRANSPARENT, check_binary_alpha, paste, composite
from .streams import LayerStream, GifLayer, DecoderPool, GifEncoder
from .pipeline import PipelineState, PipelineResult, CompositePipeline, flatten

__all__ = [
    # Errors
    "GifStackError",
    "StartupError",
    "StructuralMismatchError",
    "UnsupportedAlphaError",
    "FrameDecodeError",
    "EncodingError",
    # Uniformity
    "NonUniformError",
    "get_all_same",
    "is_uniform",
    # Frames
    "Frame",
    "FrameSet",
    "CompositeFrame",
    # Compositing
    "OPAQUE",
    "TRANSPARENT",
    "check_binary_alpha",
    "paste",
    "composite",
    # Streams
    "LayerStream",
    "GifLayer",
    "DecoderPool",
    "GifEncoder",
    # Pipeline
    "PipelineState",
    "PipelineResult",
    "CompositePipeline",
    "flatten",
]

__version__ = "0.1.0"
