# gifstack - Pipeline
"""
Drives the decode, validate, composite and encode cycle.

Each iteration pulls one frame from every layer, checks that the layers are
still in step, composites the frames and hands the result to the encoder.
Failures are returned as structured :class:`PipelineResult` values rather
than raised, so callers can report the cause and pick their exit behavior.

Example::

    with open('out.gif', 'wb') as sink:
        result = flatten(['background.gif', 'sprite.gif'], sink)
    if not result.ok:
        print(result.error)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import IO, Sequence

from .compositor import composite
from .exceptions import GifStackError, StartupError, StructuralMismatchError
from .frame import CompositeFrame, FrameSet
from .streams.decoder import DecoderPool, LayerSource
from .streams.encoder import GifEncoder

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """Lifecycle of a pipeline run."""

    RUNNING = "running"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class PipelineResult:
    """Outcome of a pipeline run.

    :ivar state: DONE on success, ABORTED on any fatal error
    :ivar frames_written: Number of composite frames handed to the encoder
    :ivar width: Canvas width, 0 if the layers never opened
    :ivar height: Canvas height, 0 if the layers never opened
    :ivar error: The error which aborted the run
    """

    state: PipelineState
    frames_written: int = 0
    width: int = 0
    height: int = 0
    error: GifStackError | None = None

    @property
    def ok(self) -> bool:
        return self.state == PipelineState.DONE

    def raise_for_error(self) -> None:
        """Re-raises the error of an aborted run. Does nothing on success."""
        if self.error is not None:
            raise self.error


class CompositePipeline:
    """Advances all layers of a pool in lockstep and encodes the composites.

    The pipeline starts RUNNING once the pool has passed its geometry
    checks. It ends DONE when every layer is exhausted in the same
    iteration, and ABORTED on the first fatal error. Nothing is retried.
    """

    def __init__(self, pool: DecoderPool, encoder: GifEncoder) -> None:
        """
        :param pool: The validated layers, bottom first
        :param encoder: Receives the composite frames. Must match the pool's
            geometry.
        """
        if (encoder.width, encoder.height) != (pool.width, pool.height):
            raise StartupError(
                f"Encoder size {encoder.width}x{encoder.height} does not match "
                f"the layers' size {pool.width}x{pool.height}"
            )
        self.pool = pool
        self.encoder = encoder
        self.state = PipelineState.RUNNING
        self.frames_written = 0

    def step(self) -> CompositeFrame | None:
        """
        Runs one iteration. Any error moves the pipeline to ABORTED, after
        which further steps raise RuntimeError.

        :return: The composite frame written, or None once all layers are
            exhausted
        :raises StructuralMismatchError: If only some layers are exhausted or
            the frames' delays differ
        :raises UnsupportedAlphaError: If a frame holds partial transparency
        :raises EncodingError: If the composite can't be written
        """
        if self.state != PipelineState.RUNNING:
            raise RuntimeError(f"Pipeline is {self.state.value}")
        try:
            return self._advance()
        except GifStackError:
            self.state = PipelineState.ABORTED
            raise

    def _advance(self) -> CompositeFrame | None:
        frames = self.pool.pull_frames()
        if all(frame is None for frame in frames):
            self.state = PipelineState.DONE
            return None
        if any(frame is None for frame in frames):
            exhausted = [
                layer.name
                for layer, frame in zip(self.pool.layers, frames)
                if frame is None
            ]
            raise StructuralMismatchError(
                f"frame count mismatch: {', '.join(exhausted)} ended after "
                f"{self.frames_written} frames while other layers continue"
            )

        frame_set = FrameSet(index=self.frames_written, frames=frames)
        result = composite(frame_set)
        self.encoder.write_frame(result)
        self.frames_written += 1
        return result

    def run(self) -> PipelineResult:
        """
        Runs until all layers are exhausted or a fatal error occurs.

        On success the encoder is closed, so the trailer is written and the
        sink flushed before this returns. On failure the encoder is left
        open and no trailer is written.

        :return: The outcome. Errors are reported in ``error``, not raised.
        """
        try:
            while self.step() is not None:
                pass
            self.encoder.close()
        except GifStackError as e:
            # step() has already aborted unless closing the encoder failed
            self.state = PipelineState.ABORTED
            logger.error(f"Pipeline aborted after {self.frames_written} frames: {e}")
            return self._result(error=e)
        logger.info(
            f"Composited {self.frames_written} frames from {len(self.pool)} layers "
            f"({self.pool.width}x{self.pool.height})"
        )
        return self._result()

    def _result(self, error: GifStackError | None = None) -> PipelineResult:
        return PipelineResult(
            state=self.state,
            frames_written=self.frames_written,
            width=self.pool.width,
            height=self.pool.height,
            error=error,
        )


def flatten(
    sources: Sequence[LayerSource],
    sink: IO[bytes],
    names: Sequence[str] | None = None,
    interlace: bool | None = None,
) -> PipelineResult:
    """
    Composites animated GIFs into one looping animated GIF.

    Inputs are layered in the order given: first on bottom, last on top.
    All inputs must share width, height, frame count and per-frame delays,
    and may only hold fully opaque or fully transparent pixels.

    :param sources: Paths or readable binary streams, at least two
    :param sink: Writable binary stream receiving the GIF. Nothing is
        written if the inputs fail validation at startup.
    :param names: Optional names for the sources used in diagnostics
    :param interlace: Store frames interlaced, defaults to the settings
    :return: The outcome of the run
    """
    try:
        pool = DecoderPool.open(sources, names=names)
    except StartupError as e:
        logger.error(f"Failed to open layers: {e}")
        return PipelineResult(state=PipelineState.ABORTED, error=e)

    with pool:
        try:
            encoder = GifEncoder(sink, pool.width, pool.height, interlace=interlace)
        except GifStackError as e:
            logger.error(f"Failed to start encoder: {e}")
            return PipelineResult(
                state=PipelineState.ABORTED,
                width=pool.width,
                height=pool.height,
                error=e,
            )
        return CompositePipeline(pool, encoder).run()


__all__ = ["PipelineState", "PipelineResult", "CompositePipeline", "flatten"]
