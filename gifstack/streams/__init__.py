"""gifstack streams package.

- LayerStream: Abstract base class for pull-based layer sources
- GifLayer: One animated GIF decoded into RGBA frames
- DecoderPool: The ordered, geometry-checked set of layers of a composite
- GifEncoder: Streaming writer for the looping output GIF

Example:
    from gifstack.streams import DecoderPool, GifEncoder

    with DecoderPool.open(['bottom.gif', 'top.gif']) as pool:
        frames = pool.pull_frames()
"""

from .base import LayerStream
from .decoder import GifLayer, DecoderPool, LayerSource, GIF_MIME_TYPE
from .encoder import GifEncoder, quantize, LOOP_FOREVER

__all__ = [
    "LayerStream",
    "GifLayer",
    "DecoderPool",
    "LayerSource",
    "GIF_MIME_TYPE",
    "GifEncoder",
    "quantize",
    "LOOP_FOREVER",
]
