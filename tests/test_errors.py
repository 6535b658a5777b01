"""Tests for the error hierarchy."""

from __future__ import annotations

import pytest

from omnifind.errors import (
    DimensionMismatchError,
    EmptyInputError,
    FrameExtractionError,
    NoContentError,
    NoFramesProcessedError,
    NotFoundError,
    NotInitializedError,
    OmniFindError,
    ProcessingError,
    UnsupportedTypeError,
)


class TestErrorTags:
    """Every error names the component that raised it."""

    @pytest.mark.parametrize(
        ("error", "component"),
        [
            (UnsupportedTypeError("a.bin"), "classifier"),
            (NotFoundError("/tmp/x"), "content"),
            (NoContentError("empty"), "text-embedder"),
            (NoFramesProcessedError("/tmp/v.mp4", attempted=10), "video-embedder"),
            (EmptyInputError("nothing"), "aggregator"),
            (NotInitializedError("closed"), "store"),
            (DimensionMismatchError(768, 3), "store"),
            (FrameExtractionError("bad frame"), "frame-extractor"),
        ],
    )
    def test_component(self, error: OmniFindError, component: str) -> None:
        assert error.component == component
        assert str(error).startswith(f"[{component}] ")
        assert isinstance(error, OmniFindError)

    def test_component_override(self) -> None:
        error = DimensionMismatchError(4, 5, component="aggregator")

        assert error.component == "aggregator"
        assert error.expected == 4
        assert error.actual == 5

    def test_processing_error_wraps_cause(self) -> None:
        cause = RuntimeError("decoder crashed")
        error = ProcessingError("image-embedder", "Failed to process image", cause)

        assert error.cause is cause
        assert str(error) == "[image-embedder] Failed to process image: decoder crashed"

    def test_frame_extraction_is_processing_error(self) -> None:
        assert isinstance(FrameExtractionError("x"), ProcessingError)

    def test_unsupported_prefers_declared_type(self) -> None:
        error = UnsupportedTypeError("a.bin", "application/zip")

        assert "application/zip" in str(error)
