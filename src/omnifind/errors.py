"""Exception hierarchy shared across the indexing and search pipeline.

Every error carries the name of the component that raised it so that batch
reports and log lines can point at the failing stage without a traceback.
"""

from __future__ import annotations

from pathlib import Path


class OmniFindError(Exception):
    """Base class for all pipeline errors."""

    component: str = "omnifind"

    def __init__(self, message: str, *, component: str | None = None) -> None:
        if component is not None:
            self.component = component
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.component}] {self.message}"


class UnsupportedTypeError(OmniFindError):
    """File is neither text, image nor video."""

    component = "classifier"

    def __init__(self, name: str, declared_type: str | None = None) -> None:
        self.name = name
        self.declared_type = declared_type
        super().__init__(f"Unsupported file type: {declared_type or name}")


class NotFoundError(OmniFindError):
    """Locator does not point to readable content."""

    component = "content"

    def __init__(self, locator: str | Path) -> None:
        self.locator = str(locator)
        super().__init__(f"File not found: {self.locator}")


class NoContentError(OmniFindError):
    """Text had no non-blank chunk to embed."""

    component = "text-embedder"


class NoFramesProcessedError(OmniFindError):
    """Every sampled video frame failed."""

    component = "video-embedder"

    def __init__(self, locator: str | Path, attempted: int) -> None:
        self.locator = str(locator)
        self.attempted = attempted
        super().__init__(
            f"No frames could be processed from video {self.locator} "
            f"({attempted} attempted)"
        )


class EmptyInputError(OmniFindError):
    """Aggregation was asked to average nothing."""

    component = "aggregator"


class NotInitializedError(OmniFindError):
    """Store was used before it was opened or after it was closed."""

    component = "store"


class DimensionMismatchError(OmniFindError):
    """Vector length does not match the expected dimension."""

    component = "store"

    def __init__(self, expected: int, actual: int, *, component: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}",
            component=component,
        )


class ProcessingError(OmniFindError):
    """Unexpected lower-layer failure wrapped with its originating component."""

    def __init__(self, component: str, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, component=component)


class FrameExtractionError(ProcessingError):
    """A single video frame could not be decoded or written."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__("frame-extractor", message, cause)
