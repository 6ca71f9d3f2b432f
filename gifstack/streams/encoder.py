"""Streaming GIF encoder.

GifEncoder writes an animated GIF frame by frame to any writable binary
sink, without holding more than the current frame in memory. Pillow's
multi-frame writer needs the whole sequence up front and merges identical
consecutive frames, so each frame is encoded on its own with Pillow's
single-frame writer and its LZW image data is spliced into the stream.

Stream layout::

    header + logical screen descriptor (no global color table)
    NETSCAPE2.0 application extension (loop forever)
    per frame: graphic control extension, image descriptor,
               local color table, LZW image data
    trailer
"""

from __future__ import annotations

import io
import logging
import struct
from typing import IO

import numpy as np
import PIL.Image

from gifstack.compositor import OPAQUE
from gifstack.config import settings
from gifstack.exceptions import EncodingError
from gifstack.frame import CompositeFrame

logger = logging.getLogger(__name__)

GIF_SIGNATURE = b"GIF89a"
LOOP_FOREVER = 0
"NETSCAPE2.0 loop count meaning repeat infinitely"

MAX_COLORS = 256

DISPOSAL_RESTORE_BACKGROUND = 2
"Every frame covers the full canvas, so its area is cleared before the next"

_EXTENSION_INTRODUCER = 0x21
_IMAGE_SEPARATOR = 0x2C
_TRAILER = b"\x3b"
_GRAPHIC_CONTROL_LABEL = 0xF9
_APPLICATION_LABEL = 0xFF

_COLOR_TABLE_FLAG = 0x80
_INTERLACE_FLAG = 0x40


def quantize(pixels: np.ndarray) -> tuple[np.ndarray, bytes, int]:
    """
    Maps an RGBA buffer with binary alpha to palette indices.

    The last palette entry is always reserved as the transparent index, even
    if every pixel is opaque, so that restoring a frame to the background
    yields transparency in every decoder. Opaque colors get an exact palette
    when they fit into the remaining 255 entries, otherwise they are reduced
    with Pillow's quantizer.

    :param pixels: RGBA buffer of shape (height, width, 4)
    :return: Tuple of index buffer (height, width), RGB palette bytes and
        the transparent index
    """
    height, width = pixels.shape[:2]
    opaque = pixels[:, :, 3] == OPAQUE
    limit = MAX_COLORS - 1

    indices = np.zeros((height, width), dtype=np.uint8)
    if opaque.any():
        colors, inverse = np.unique(
            pixels[:, :, :3][opaque], axis=0, return_inverse=True
        )
        if len(colors) <= limit:
            indices[opaque] = inverse.reshape(-1)
            palette = colors.astype(np.uint8).tobytes()
        else:
            logger.warning(
                f"Frame holds {len(colors)} colors, reducing to {limit} for GIF"
            )
            rgb = PIL.Image.fromarray(np.ascontiguousarray(pixels[:, :, :3]))
            reduced = rgb.quantize(colors=limit, dither=PIL.Image.Dither.NONE)
            reduced_indices = np.array(reduced, dtype=np.uint8)
            indices[opaque] = reduced_indices[opaque]
            palette = bytes(reduced.getpalette()[: limit * 3])
        color_count = len(palette) // 3
    else:
        palette = b""
        color_count = 0

    transparent_index = color_count
    indices[~opaque] = transparent_index
    palette += b"\x00\x00\x00"
    return indices, palette, transparent_index


def _skip_sub_blocks(data: bytes, pos: int) -> int:
    """Returns the position after a chain of data sub-blocks."""
    while True:
        size = data[pos]
        pos += 1
        if size == 0:
            return pos
        pos += size


def _split_single_frame(data: bytes) -> tuple[bytes, int, int, bytes]:
    """
    Extracts the image of a single-frame GIF written by Pillow.

    :param data: The complete GIF file
    :return: Tuple of color table bytes, color table size bits, interlace
        flag and the LZW image data (minimum code size plus sub-blocks)
    """
    if data[:3] != b"GIF":
        raise EncodingError("Pillow did not produce GIF data")
    flags = data[10]
    pos = 13
    color_table = b""
    size_bits = 0
    if flags & _COLOR_TABLE_FLAG:
        size_bits = flags & 0x07
        table_length = 3 << (size_bits + 1)
        color_table = data[pos : pos + table_length]
        pos += table_length

    while pos < len(data):
        introducer = data[pos]
        if introducer == _EXTENSION_INTRODUCER:
            pos = _skip_sub_blocks(data, pos + 2)
        elif introducer == _IMAGE_SEPARATOR:
            local_flags = data[pos + 9]
            pos += 10
            if local_flags & _COLOR_TABLE_FLAG:
                size_bits = local_flags & 0x07
                table_length = 3 << (size_bits + 1)
                color_table = data[pos : pos + table_length]
                pos += table_length
            image_start = pos
            pos = _skip_sub_blocks(data, pos + 1)
            if not color_table:
                raise EncodingError("Encoded frame has no color table")
            return color_table, size_bits, local_flags & _INTERLACE_FLAG, data[image_start:pos]
        else:
            break
    raise EncodingError("Encoded frame holds no image data")


class GifEncoder:
    """Writes composite frames to a binary sink as one looping animated GIF.

    The header is written on construction, each frame as soon as it is
    passed to :meth:`write_frame`, and the trailer by :meth:`close`. The
    sink is flushed after the trailer so consumers see complete data only
    once the encoder is closed. The sink itself is borrowed and not closed.

    Example:
        with open('out.gif', 'wb') as f:
            with GifEncoder(f, 64, 64) as encoder:
                for frame in frames:
                    encoder.write_frame(frame)
    """

    def __init__(
        self,
        sink: IO[bytes],
        width: int,
        height: int,
        interlace: bool | None = None,
    ) -> None:
        """
        :param sink: Writable binary stream receiving the GIF
        :param width: Canvas width in pixels
        :param height: Canvas height in pixels
        :param interlace: Store frames interlaced. Defaults to
            ``settings.INTERLACE``.
        :raises EncodingError: If the header can't be written
        """
        if not (0 < width <= 0xFFFF and 0 < height <= 0xFFFF):
            raise EncodingError(f"Invalid GIF canvas size {width}x{height}")
        self.width = width
        self.height = height
        self.interlace = settings.INTERLACE if interlace is None else interlace
        self.frames_written = 0
        self._sink = sink
        self._closed = False
        self._write(self._header())

    def _header(self) -> bytes:
        screen = struct.pack("<HHBBB", self.width, self.height, 0, 0, 0)
        loop = (
            bytes([_EXTENSION_INTRODUCER, _APPLICATION_LABEL, 11])
            + b"NETSCAPE2.0"
            + struct.pack("<BBHB", 3, 1, LOOP_FOREVER, 0)
        )
        return GIF_SIGNATURE + screen + loop

    def _write(self, data: bytes) -> None:
        try:
            self._sink.write(data)
        except (OSError, ValueError) as e:
            raise EncodingError(f"Failed to write GIF data: {e}") from e

    def _encode_image(self, indices: np.ndarray, palette: bytes) -> bytes:
        image = PIL.Image.frombytes("P", (self.width, self.height), indices.tobytes())
        image.putpalette(palette)
        buffer = io.BytesIO()
        image.save(buffer, format="GIF", optimize=False, interlace=self.interlace)
        return buffer.getvalue()

    def write_frame(self, frame: CompositeFrame) -> None:
        """
        Encodes one frame and writes it to the sink.

        :param frame: The frame to append. Its delay is stored unchanged.
        :raises EncodingError: If the encoder is closed, the frame's geometry
            doesn't match or encoding fails
        """
        if self._closed:
            raise EncodingError("Cannot write a frame to a closed encoder")
        if (frame.width, frame.height) != (self.width, self.height):
            raise EncodingError(
                f"Frame {frame.index} is {frame.width}x{frame.height}, "
                f"expected {self.width}x{self.height}"
            )
        if not 0 <= frame.delay <= 0xFFFF:
            raise EncodingError(f"Frame {frame.index} delay {frame.delay} out of range")

        indices, palette, transparent_index = quantize(frame.pixels)
        try:
            encoded = self._encode_image(indices, palette)
        except (OSError, ValueError) as e:
            raise EncodingError(f"Failed to encode frame {frame.index}: {e}") from e
        color_table, size_bits, interlace_flag, image_data = _split_single_frame(encoded)

        packed = DISPOSAL_RESTORE_BACKGROUND << 2 | 1  # transparent index present
        control = bytes([_EXTENSION_INTRODUCER, _GRAPHIC_CONTROL_LABEL, 4]) + struct.pack(
            "<BHBB", packed, frame.delay, transparent_index, 0
        )
        descriptor = bytes([_IMAGE_SEPARATOR]) + struct.pack(
            "<HHHHB",
            0,
            0,
            self.width,
            self.height,
            _COLOR_TABLE_FLAG | interlace_flag | size_bits,
        )
        self._write(control + descriptor + color_table + image_data)
        self.frames_written += 1
        logger.debug(
            f"Wrote frame {frame.index}: {len(palette) // 3} colors, "
            f"delay {frame.delay}"
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Write the trailer and flush the sink. Does nothing if already closed."""
        if self._closed:
            return
        self._closed = True
        self._write(_TRAILER)
        flush = getattr(self._sink, "flush", None)
        if flush is not None:
            try:
                flush()
            except (OSError, ValueError) as e:
                raise EncodingError(f"Failed to flush GIF data: {e}") from e
        logger.debug(f"Closed encoder after {self.frames_written} frames")

    def __enter__(self) -> "GifEncoder":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.close()


__all__ = ["GifEncoder", "quantize", "LOOP_FOREVER", "MAX_COLORS"]
