"""Image preprocessing and video frame extraction.

Uses Pillow to turn an image into the normalised ``(3, 224, 224)`` tensor the
CLIP vision tower expects, and OpenCV to grab single frames from a video.
"""

from __future__ import annotations

import logging
import tempfile
import uuid
from pathlib import Path

import cv2
import numpy as np
from PIL import Image

from omnifind.errors import FrameExtractionError

LOGGER = logging.getLogger(__name__)

IMAGE_SIZE = 224

# CLIP preprocessing statistics (RGB order)
CLIP_MEAN = np.array([0.48145466, 0.4578275, 0.40821073], dtype="float32")
CLIP_STD = np.array([0.26862954, 0.26130258, 0.27577711], dtype="float32")


def preprocess_image(path: Path | str, *, size: int = IMAGE_SIZE) -> np.ndarray:
    """Load an image and return a channel-first float32 tensor.

    Animated formats contribute their first frame only.
    """
    with Image.open(path) as image:
        rgb = image.convert("RGB").resize((size, size), Image.Resampling.BICUBIC)
    pixels = np.asarray(rgb, dtype="float32") / 255.0
    pixels = (pixels - CLIP_MEAN) / CLIP_STD
    return np.ascontiguousarray(pixels.transpose(2, 0, 1), dtype="float32")


def frame_timestamps(duration_ms: float, count: int) -> list[int]:
    """Evenly spaced sample points over ``duration_ms``, starting at zero."""
    if count < 1:
        return []
    step = duration_ms / count
    return [int(step * index) for index in range(count)]


class VideoFrameExtractor:
    """Extracts still frames from videos into a scratch directory."""

    def __init__(self, output_dir: Path | None = None, *, jpeg_quality: int = 90) -> None:
        self._output_dir = Path(output_dir) if output_dir is not None else None
        self._scratch: tempfile.TemporaryDirectory[str] | None = None
        self.jpeg_quality = jpeg_quality

    @property
    def output_dir(self) -> Path:
        if self._output_dir is not None:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            return self._output_dir
        if self._scratch is None:
            self._scratch = tempfile.TemporaryDirectory(prefix="omnifind-frames-")
        return Path(self._scratch.name)

    def close(self) -> None:
        """Remove the scratch directory, if one was created."""
        if self._scratch is not None:
            self._scratch.cleanup()
            self._scratch = None

    def estimate_duration_ms(self, path: Path | str) -> float | None:
        """Return the video length in milliseconds, or ``None`` when unknown."""
        capture = cv2.VideoCapture(str(path))
        try:
            if not capture.isOpened():
                return None
            frame_count = capture.get(cv2.CAP_PROP_FRAME_COUNT)
            fps = capture.get(cv2.CAP_PROP_FPS)
        finally:
            capture.release()
        if not fps or fps <= 0 or not frame_count or frame_count <= 0:
            return None
        return float(frame_count) / float(fps) * 1000.0

    def extract_frame(self, path: Path | str, timestamp_ms: int) -> Path:
        """Write the frame at ``timestamp_ms`` to a JPEG and return its path."""
        capture = cv2.VideoCapture(str(path))
        try:
            if not capture.isOpened():
                raise FrameExtractionError(f"Could not open video {path}")
            capture.set(cv2.CAP_PROP_POS_MSEC, float(timestamp_ms))
            ok, frame = capture.read()
        finally:
            capture.release()

        if not ok or frame is None:
            raise FrameExtractionError(f"No frame at {timestamp_ms} ms in {path}")

        target = self.output_dir / f"{Path(path).stem}_{timestamp_ms}_{uuid.uuid4().hex[:8]}.jpg"
        written = cv2.imwrite(str(target), frame, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not written:
            raise FrameExtractionError(f"Could not write frame to {target}")
        LOGGER.debug("Extracted frame %s ms of %s", timestamp_ms, path)
        return target
