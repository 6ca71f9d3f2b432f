"""Frame compositor for binary-alpha layer stacks.

Merges one frame per layer into a single RGBA buffer. Layers are pasted in
the order they were supplied, so the last layer ends up on top. Only fully
opaque and fully transparent pixels are supported; anything in between is
rejected rather than blended.
"""

from __future__ import annotations

import logging

import numpy as np

from .exceptions import StructuralMismatchError, UnsupportedAlphaError
from .frame import CompositeFrame, FrameSet
from .uniformity import NonUniformError, get_all_same

logger = logging.getLogger(__name__)

OPAQUE = 255
"Alpha value of a pixel which replaces whatever lies below it"

TRANSPARENT = 0
"Alpha value of a pixel which leaves whatever lies below it untouched"


def check_binary_alpha(pixels: np.ndarray, layer: int | None = None) -> None:
    """
    Ensures every pixel of an RGBA buffer is fully opaque or fully transparent.

    :param pixels: RGBA buffer of shape (height, width, 4)
    :param layer: Layer index used in the error message
    :raises UnsupportedAlphaError: For the first offending pixel in row-major
        order
    """
    alpha = pixels[:, :, 3]
    invalid = (alpha != OPAQUE) & (alpha != TRANSPARENT)
    if invalid.any():
        y, x = np.argwhere(invalid)[0]
        raise UnsupportedAlphaError(int(alpha[y, x]), int(x), int(y), layer=layer)


def paste(base: np.ndarray, overlay: np.ndarray, layer: int | None = None) -> np.ndarray:
    """
    Pastes ``overlay`` on top of ``base`` using the binary alpha rule.

    Opaque overlay pixels replace the base pixel including its alpha,
    transparent overlay pixels keep the base pixel.

    :param base: The RGBA buffer below
    :param overlay: The RGBA buffer on top, same shape as ``base``
    :param layer: Layer index of ``overlay``, for diagnostics
    :return: A new RGBA buffer
    """
    if base.shape != overlay.shape:
        raise StructuralMismatchError(
            f"Frame shape {overlay.shape} of layer {layer} does not match "
            f"the canvas shape {base.shape}"
        )
    check_binary_alpha(overlay, layer=layer)
    mask = overlay[:, :, 3:4] == OPAQUE
    return np.where(mask, overlay, base)


def composite(frame_set: FrameSet) -> CompositeFrame:
    """
    Flattens one frame per layer into a single composite frame.

    The fold starts from a fully transparent canvas and pastes every layer
    bottom to top, so the bottom layer is validated like any other.

    :param frame_set: The frames of one iteration, bottom layer first
    :return: The composite frame carrying the shared delay
    :raises StructuralMismatchError: If the frames' delays differ or the set
        is empty
    :raises UnsupportedAlphaError: If any frame holds partial transparency
    """
    if not len(frame_set):
        raise StructuralMismatchError(f"Frame set {frame_set.index} holds no frames")
    try:
        delay = get_all_same(frame_set.delays)
    except NonUniformError:
        raise StructuralMismatchError(
            f"frame delay mismatch in frame {frame_set.index}: "
            f"{frame_set.delays} (hundredths of a second per layer)"
        ) from None

    canvas = np.zeros_like(frame_set[0].pixels)
    for layer, frame in enumerate(frame_set):
        canvas = paste(canvas, frame.pixels, layer=layer)

    logger.debug(f"Composited frame {frame_set.index} from {len(frame_set)} layers")
    return CompositeFrame(
        pixels=canvas,
        delay=delay,
        index=frame_set.index,
        layer_count=len(frame_set),
    )


__all__ = ["OPAQUE", "TRANSPARENT", "check_binary_alpha", "paste", "composite"]
