"""
Image Decoder
=============

Dedicated module for decoding encoded images (JPEG/PNG bytes or base64
strings) into Frames backed by OpenCV matrices.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Validates shape and dtype
    - Fails fast on corrupt input with ImageDecodeError
    - Decodes to BGR; grayscale derivation happens in the metric layer
"""

import base64
import binascii
import logging

import cv2
import numpy as np

from capture_agent.stream.frame import Frame


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when image bytes cannot be decoded into a frame."""
    pass


def decode_image_bytes(
    data: bytes,
    frame_id: int = 0,
    timestamp: float = 0.0,
) -> Frame:
    """
    Decode encoded image bytes into a BGR Frame.

    Args:
        data: Encoded image (any format cv2.imdecode understands)
        frame_id: Frame identifier to stamp on the result
        timestamp: Capture timestamp to stamp on the result

    Returns:
        Frame with BGR pixels (H, W, 3), dtype=uint8

    Raises:
        ImageDecodeError: If decoding fails or image is invalid
    """
    if not data:
        raise ImageDecodeError(f"Empty image payload for frame {frame_id}")

    try:
        nparr = np.frombuffer(data, np.uint8)
        bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise ImageDecodeError(
            f"OpenCV failed to decode frame {frame_id}: {e}"
        ) from e

    if bgr is None:
        raise ImageDecodeError(
            f"Failed to decode frame {frame_id}: cv2.imdecode returned None"
        )

    if len(bgr.shape) != 3 or bgr.shape[2] != 3:
        raise ImageDecodeError(
            f"Invalid image shape for frame {frame_id}: {bgr.shape}"
        )

    if bgr.dtype != np.uint8:
        raise ImageDecodeError(
            f"Invalid dtype for frame {frame_id}: {bgr.dtype}"
        )

    return Frame(frame_id=frame_id, timestamp=timestamp, pixels=bgr)


def decode_image_b64(
    image_b64: str,
    frame_id: int = 0,
    timestamp: float = 0.0,
) -> Frame:
    """
    Decode a base64-encoded image into a BGR Frame.

    Args:
        image_b64: Base64 string of an encoded image
        frame_id: Frame identifier to stamp on the result
        timestamp: Capture timestamp to stamp on the result

    Returns:
        Frame with BGR pixels

    Raises:
        ImageDecodeError: If base64 or image decoding fails
    """
    try:
        data = base64.b64decode(image_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(
            f"Base64 decode failed for frame {frame_id}: {e}"
        ) from e

    return decode_image_bytes(data, frame_id=frame_id, timestamp=timestamp)


def encode_frame_png(frame: Frame) -> bytes:
    """
    Encode a frame as PNG bytes.

    Used by the simulation script (and tests) to produce payloads that
    round-trip through the real decoder.

    Raises:
        ImageDecodeError: If OpenCV refuses to encode the frame
    """
    ok, buffer = cv2.imencode(".png", np.ascontiguousarray(frame.pixels))
    if not ok:
        raise ImageDecodeError(f"Failed to encode frame {frame.frame_id}")
    return buffer.tobytes()

