"""Tests for image preprocessing and video frame extraction."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest
from PIL import Image

from omnifind.errors import FrameExtractionError
from omnifind.ingestion.media import (
    CLIP_MEAN,
    CLIP_STD,
    VideoFrameExtractor,
    frame_timestamps,
    preprocess_image,
)


class TestPreprocessImage:
    """Test preprocess_image function."""

    def test_shape_and_dtype(self, tmp_path: Path) -> None:
        path = tmp_path / "photo.png"
        Image.new("RGB", (640, 480), color=(255, 0, 0)).save(path)

        pixels = preprocess_image(path)

        assert pixels.shape == (3, 224, 224)
        assert pixels.dtype == np.float32

    def test_normalization(self, tmp_path: Path) -> None:
        """A solid colour maps to (value - mean) / std per channel."""
        path = tmp_path / "red.png"
        Image.new("RGB", (32, 32), color=(255, 0, 0)).save(path)

        pixels = preprocess_image(path)

        expected = (np.array([1.0, 0.0, 0.0], dtype="float32") - CLIP_MEAN) / CLIP_STD
        np.testing.assert_allclose(pixels[:, 100, 100], expected, rtol=1e-5)

    def test_grayscale_and_alpha_converted(self, tmp_path: Path) -> None:
        gray = tmp_path / "gray.png"
        Image.new("L", (50, 50), color=128).save(gray)
        rgba = tmp_path / "rgba.png"
        Image.new("RGBA", (50, 50), color=(0, 0, 255, 10)).save(rgba)

        assert preprocess_image(gray).shape == (3, 224, 224)
        assert preprocess_image(rgba).shape == (3, 224, 224)

    def test_invalid_image(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"not an image")

        with pytest.raises(OSError):
            preprocess_image(path)


class TestFrameTimestamps:
    def test_evenly_spaced(self) -> None:
        assert frame_timestamps(10_000, 10) == [0, 1000, 2000, 3000, 4000, 5000, 6000, 7000, 8000, 9000]

    def test_floors_fractions(self) -> None:
        assert frame_timestamps(1000, 3) == [0, 333, 666]

    def test_zero_count(self) -> None:
        assert frame_timestamps(1000, 0) == []


def _capture(opened: bool = True, frame: np.ndarray | None = None, fps: float = 25.0, frames: float = 250.0):
    capture = MagicMock()
    capture.isOpened.return_value = opened
    capture.read.return_value = (frame is not None, frame)

    def get(prop):
        if prop == cv2.CAP_PROP_FPS:
            return fps
        if prop == cv2.CAP_PROP_FRAME_COUNT:
            return frames
        return 0.0

    capture.get.side_effect = get
    return capture


class TestVideoFrameExtractor:
    """Test VideoFrameExtractor with a mocked OpenCV capture."""

    def test_estimate_duration(self) -> None:
        with patch("omnifind.ingestion.media.cv2.VideoCapture", return_value=_capture()):
            assert VideoFrameExtractor().estimate_duration_ms("/tmp/v.mp4") == pytest.approx(10_000.0)

    def test_estimate_duration_unknown_fps(self) -> None:
        with patch("omnifind.ingestion.media.cv2.VideoCapture", return_value=_capture(fps=0.0)):
            assert VideoFrameExtractor().estimate_duration_ms("/tmp/v.mp4") is None

    def test_estimate_duration_unopened(self) -> None:
        capture = _capture(opened=False)
        with patch("omnifind.ingestion.media.cv2.VideoCapture", return_value=capture):
            assert VideoFrameExtractor().estimate_duration_ms("/tmp/v.mp4") is None
        capture.release.assert_called_once()

    def test_extract_frame_writes_jpeg(self, tmp_path: Path) -> None:
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        capture = _capture(frame=frame)
        extractor = VideoFrameExtractor(output_dir=tmp_path / "frames")

        with patch("omnifind.ingestion.media.cv2.VideoCapture", return_value=capture):
            target = extractor.extract_frame("/videos/clip.mp4", 2000)

        assert target.exists()
        assert target.parent == tmp_path / "frames"
        assert target.name.startswith("clip_2000_")
        capture.set.assert_called_once_with(cv2.CAP_PROP_POS_MSEC, 2000.0)
        capture.release.assert_called_once()

    def test_extract_frame_read_failure(self, tmp_path: Path) -> None:
        extractor = VideoFrameExtractor(output_dir=tmp_path)
        with patch("omnifind.ingestion.media.cv2.VideoCapture", return_value=_capture(frame=None)):
            with pytest.raises(FrameExtractionError):
                extractor.extract_frame("/videos/clip.mp4", 0)

    def test_extract_frame_unopened(self, tmp_path: Path) -> None:
        extractor = VideoFrameExtractor(output_dir=tmp_path)
        with patch("omnifind.ingestion.media.cv2.VideoCapture", return_value=_capture(opened=False)):
            with pytest.raises(FrameExtractionError):
                extractor.extract_frame("/videos/clip.mp4", 0)

    def test_default_output_dir_is_temporary(self) -> None:
        extractor = VideoFrameExtractor()

        assert extractor.output_dir.is_dir()
        assert extractor.output_dir.name.startswith("omnifind-frames-")

    def test_close_removes_scratch_dir(self, tmp_path: Path) -> None:
        frame = np.zeros((8, 8, 3), dtype=np.uint8)
        extractor = VideoFrameExtractor()
        with patch("omnifind.ingestion.media.cv2.VideoCapture", return_value=_capture(frame=frame)):
            target = extractor.extract_frame("/videos/clip.mp4", 0)
        scratch = target.parent

        extractor.close()
        extractor.close()

        assert not scratch.exists()

    def test_close_keeps_given_output_dir(self, tmp_path: Path) -> None:
        extractor = VideoFrameExtractor(output_dir=tmp_path / "frames")
        assert extractor.output_dir.is_dir()

        extractor.close()

        assert (tmp_path / "frames").is_dir()

    def test_new_scratch_dir_after_close(self) -> None:
        extractor = VideoFrameExtractor()
        first = extractor.output_dir
        extractor.close()

        second = extractor.output_dir

        assert second.is_dir()
        assert second != first
        extractor.close()
