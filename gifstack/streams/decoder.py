"""GIF decoding streams.

This module provides GifLayer, a LayerStream decoding one animated GIF with
Pillow, and DecoderPool, which opens all layers of a composite and validates
that they share the same geometry.
"""

from __future__ import annotations

import io
import logging
import os
from typing import IO, Sequence, Union

import filetype
import numpy as np
import PIL.Image

from gifstack.exceptions import FrameDecodeError, StartupError
from gifstack.frame import Frame
from gifstack.uniformity import NonUniformError, get_all_same

from .base import LayerStream

logger = logging.getLogger(__name__)

GIF_MIME_TYPE = "image/gif"

LayerSource = Union[str, os.PathLike, IO[bytes]]
"A path to a GIF file or a readable binary stream holding GIF data"

_SNIFF_BYTES = 16

# Errors Pillow raises for malformed image data
_DECODE_ERRORS = (OSError, SyntaxError, ValueError)


class GifLayer(LayerStream):
    """One animated GIF decoded frame by frame into RGBA buffers.

    The header is parsed on construction. Every frame is expanded to RGBA
    regardless of the file's color mode, and Pillow applies each frame's
    disposal method so the buffers always cover the full canvas.

    Example:
        with GifLayer('walk.gif') as layer:
            while (frame := layer.pull_frame()) is not None:
                print(frame.index, frame.delay)
    """

    def __init__(self, source: LayerSource, name: str | None = None) -> None:
        """
        Opens a GIF and reads its header.

        :param source: File path or readable binary stream. Paths are opened
            and closed by the layer. Streams are borrowed: their content is
            read into memory and they are never closed.
        :param name: Name used in diagnostics. Defaults to the path or
            the stream's ``name`` attribute.
        :raises StartupError: If the input can't be read or isn't a GIF
        """
        if name is None:
            if isinstance(source, (str, os.PathLike)):
                name = os.fspath(source)
            else:
                name = str(getattr(source, "name", "<stream>"))
        super().__init__(name=name)
        self._owned_file: IO[bytes] | None = None
        self._image: PIL.Image.Image | None = None

        if isinstance(source, (str, os.PathLike)):
            try:
                self._owned_file = open(source, "rb")
            except OSError as e:
                raise StartupError(f"{name} - {e.strerror or e}", source=name) from e
            stream: IO[bytes] = self._owned_file
        else:
            # Pillow closes the file it decodes from, so it gets a private copy
            stream = self._copy_stream(source)

        try:
            self._image = self._open_image(stream)
        except StartupError:
            self._close_owned_file()
            raise
        logger.debug(
            f"Opened layer {self.name}: {self.width}x{self.height}, "
            f"mode {self._image.mode}"
        )

    def _copy_stream(self, source: IO[bytes]) -> io.BytesIO:
        """Reads a borrowed stream from its start into memory."""
        try:
            seekable = getattr(source, "seekable", None)
            if seekable is not None and seekable():
                source.seek(0)
            return io.BytesIO(source.read())
        except (OSError, ValueError) as e:
            raise StartupError(f"{self.name} - {e}", source=self.name) from e

    def _open_image(self, stream: IO[bytes]) -> PIL.Image.Image:
        try:
            stream.seek(0)
            head = stream.read(_SNIFF_BYTES)
            stream.seek(0)
        except OSError as e:
            raise StartupError(f"{self.name} - {e}", source=self.name) from e

        mime = filetype.guess_mime(head) if head else None
        if mime != GIF_MIME_TYPE:
            found = mime or "unknown data"
            raise StartupError(
                f"{self.name} - not a GIF image (found {found})", source=self.name
            )
        try:
            return PIL.Image.open(stream, formats=["GIF"])
        except (EOFError, *_DECODE_ERRORS) as e:
            raise StartupError(
                f"{self.name} - invalid GIF header: {e}", source=self.name
            ) from e

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    def _read_frame(self) -> Frame | None:
        index = self.frames_read
        if index > 0:
            try:
                self._image.seek(index)
            except EOFError:
                logger.debug(f"Layer {self.name} exhausted after {index} frames")
                return None
            except _DECODE_ERRORS as e:
                raise FrameDecodeError(
                    f"{self.name} - malformed frame {index}: {e}", source=self.name
                ) from e
        try:
            rgba = self._image.convert("RGBA")
        except _DECODE_ERRORS as e:
            raise FrameDecodeError(
                f"{self.name} - malformed frame {index}: {e}", source=self.name
            ) from e
        # Pillow reports the delay in milliseconds, GIF stores hundredths
        delay = int(self._image.info.get("duration", 0)) // 10
        return Frame(pixels=np.array(rgba, dtype=np.uint8), delay=delay, index=index)

    def _close_owned_file(self) -> None:
        if self._owned_file is not None:
            self._owned_file.close()
            self._owned_file = None

    def close(self) -> None:
        super().close()
        if self._image is not None:
            self._image.close()
        self._close_owned_file()


class DecoderPool:
    """The ordered set of layers feeding one composite, bottom layer first.

    All layers are advanced in lockstep through :meth:`pull_frames`. The
    pool checks on construction that there are at least two layers and that
    they agree on width and height.

    Example:
        with DecoderPool.open(['background.gif', 'sprite.gif']) as pool:
            frames = pool.pull_frames()
    """

    MIN_LAYERS = 2

    def __init__(self, layers: Sequence[LayerStream]) -> None:
        """
        :param layers: The layer streams, bottom first. The pool takes
            ownership and closes them with :meth:`close`.
        :raises StartupError: If there are too few layers or their geometry
            differs
        """
        self._layers: list[LayerStream] = list(layers)
        if len(self._layers) < self.MIN_LAYERS:
            raise StartupError(
                f"Pass at least {self.MIN_LAYERS} gifs to composite together, "
                f"got {len(self._layers)}"
            )
        try:
            self._width = get_all_same(layer.width for layer in self._layers)
            self._height = get_all_same(layer.height for layer in self._layers)
        except NonUniformError:
            sizes = ", ".join(
                f"{layer.name}: {layer.width}x{layer.height}" for layer in self._layers
            )
            raise StartupError(
                f"All images must be the same width and height ({sizes})"
            ) from None

    @classmethod
    def open(
        cls,
        sources: Sequence[LayerSource],
        names: Sequence[str] | None = None,
    ) -> "DecoderPool":
        """
        Opens one :class:`GifLayer` per source.

        If any source fails to open, the layers opened so far are closed
        again before the error propagates.

        :param sources: Paths or binary streams, bottom layer first
        :param names: Optional diagnostic names, one per source
        :return: The validated pool
        :raises StartupError: On unreadable input, invalid headers, too few
            inputs, mismatched geometry or a names list of the wrong length
        """
        if names is not None and len(names) != len(sources):
            raise StartupError(
                f"Got {len(names)} names for {len(sources)} sources"
            )
        layers: list[GifLayer] = []
        try:
            for index, source in enumerate(sources):
                name = names[index] if names is not None else None
                layers.append(GifLayer(source, name=name))
            return cls(layers)
        except StartupError:
            for layer in layers:
                layer.close()
            raise

    @property
    def layers(self) -> list[LayerStream]:
        return list(self._layers)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def __len__(self) -> int:
        return len(self._layers)

    def pull_frames(self) -> list[Frame | None]:
        """Pull one frame from every layer, bottom to top.

        :return: One entry per layer, None for layers at end of stream
        """
        return [layer.pull_frame() for layer in self._layers]

    def close(self) -> None:
        """Close all layers."""
        for layer in self._layers:
            layer.close()

    def __enter__(self) -> "DecoderPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["GIF_MIME_TYPE", "LayerSource", "GifLayer", "DecoderPool"]
