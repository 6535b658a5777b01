"""Per-modality embedding of text files, images and videos."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Protocol

import numpy as np

from omnifind.errors import NoContentError, NoFramesProcessedError, OmniFindError, ProcessingError
from omnifind.ingestion.content import LocalContentAccess
from omnifind.ingestion.media import VideoFrameExtractor, frame_timestamps, preprocess_image
from omnifind.models import FileDescriptor, FrameResult, Modality
from omnifind.utils.text import DEFAULT_CHUNK_CHARS, chunk_text, non_blank
from omnifind.utils.vectors import as_vector, average_embeddings

if TYPE_CHECKING:
    from omnifind.config import AppConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_FRAME_COUNT = 10
DEFAULT_FALLBACK_DURATION_MS = 10_000


class TextEmbedder(Protocol):
    def embed_query(self, text: str) -> np.ndarray: ...


class VisionEmbedder(Protocol):
    def embed(self, pixels: np.ndarray) -> np.ndarray: ...


class ContentAccess(Protocol):
    def resolve(self, locator: str | Path) -> Path: ...

    def read_text(self, locator: str | Path) -> str: ...


class FrameExtractor(Protocol):
    def estimate_duration_ms(self, path: Path | str) -> float | None: ...

    def extract_frame(self, path: Path | str, timestamp_ms: int) -> Path: ...


class ModalityEmbedder:
    """Produces one embedding per file, whatever its modality."""

    def __init__(
        self,
        text_embedder: TextEmbedder,
        vision_embedder: VisionEmbedder,
        *,
        content: ContentAccess | None = None,
        frame_extractor: FrameExtractor | None = None,
        preprocess: Callable[[Path], np.ndarray] = preprocess_image,
        chunk_chars: int = DEFAULT_CHUNK_CHARS,
        frame_count: int = DEFAULT_FRAME_COUNT,
        fallback_duration_ms: int = DEFAULT_FALLBACK_DURATION_MS,
    ) -> None:
        self.text_embedder = text_embedder
        self.vision_embedder = vision_embedder
        self.content = content or LocalContentAccess()
        self.frame_extractor = frame_extractor or VideoFrameExtractor()
        self.preprocess = preprocess
        self.chunk_chars = chunk_chars
        self.frame_count = frame_count
        self.fallback_duration_ms = fallback_duration_ms

    @classmethod
    def from_config(cls, config: "AppConfig") -> "ModalityEmbedder":
        """Load both encoders once for the lifetime of the process."""
        from omnifind.embedding.encoder import (
            EmbeddingConfig,
            EmbeddingModel,
            VisionEmbeddingModel,
        )

        embedding_config = EmbeddingConfig(
            model_name=config.text_model,
            vision_model_name=config.vision_model,
            dimension=config.dimension,
        )
        return cls(
            EmbeddingModel(embedding_config),
            VisionEmbeddingModel(embedding_config),
            chunk_chars=config.chunk_chars,
            frame_count=config.frame_count,
            fallback_duration_ms=config.fallback_duration_ms,
        )

    def with_config(self, config: "AppConfig") -> "ModalityEmbedder":
        """Return an embedder sharing these encoders with the chunk and frame settings of ``config``."""
        return type(self)(
            self.text_embedder,
            self.vision_embedder,
            content=self.content,
            preprocess=self.preprocess,
            chunk_chars=config.chunk_chars,
            frame_count=config.frame_count,
            fallback_duration_ms=config.fallback_duration_ms,
        )

    def close(self) -> None:
        """Release scratch space used for video frames."""
        close = getattr(self.frame_extractor, "close", None)
        if close is not None:
            close()

    def embed(self, descriptor: FileDescriptor, modality: Modality) -> np.ndarray:
        if modality is Modality.TEXT:
            return self.embed_text(descriptor.locator)
        if modality is Modality.IMAGE:
            return self.embed_image(descriptor.locator)
        if modality is Modality.VIDEO:
            return self.embed_video(descriptor.locator)
        raise ValueError(f"Unknown modality: {modality!r}")

    # -- text -----------------------------------------------------------------

    def embed_text(self, locator: str | Path) -> np.ndarray:
        """Embed a text file as the mean of its chunk embeddings."""
        try:
            text = self.content.read_text(locator)
            return self.embed_text_content(text)
        except OmniFindError:
            raise
        except Exception as exc:
            raise ProcessingError("text-embedder", f"Failed to process text file {locator}", exc) from exc

    def embed_text_content(self, text: str) -> np.ndarray:
        """Embed raw text; also used for search queries."""
        chunks = non_blank(chunk_text(text, max_chars=self.chunk_chars))
        if not chunks:
            raise NoContentError("No text content to embed")
        try:
            embeddings = [as_vector(self.text_embedder.embed_query(chunk)) for chunk in chunks]
        except Exception as exc:
            raise ProcessingError("text-embedder", "Failed to get text embedding", exc) from exc
        if len(embeddings) == 1:
            return embeddings[0]
        return average_embeddings(embeddings)

    # -- image ----------------------------------------------------------------

    def embed_image(self, locator: str | Path) -> np.ndarray:
        try:
            path = self.content.resolve(locator)
            pixels = self.preprocess(path)
            return as_vector(self.vision_embedder.embed(pixels))
        except OmniFindError:
            raise
        except Exception as exc:
            raise ProcessingError("image-embedder", f"Failed to process image file {locator}", exc) from exc

    # -- video ----------------------------------------------------------------

    def embed_video(self, locator: str | Path) -> np.ndarray:
        """Embed a video as the mean of its successfully embedded sample frames."""
        try:
            path = self.content.resolve(locator)
            results = self.sample_frames(path)
        except OmniFindError:
            raise
        except Exception as exc:
            raise ProcessingError("video-embedder", f"Failed to process video file {locator}", exc) from exc

        embeddings = [result.embedding for result in results if result.ok]
        skipped = len(results) - len(embeddings)
        if skipped:
            LOGGER.debug("Skipped %d of %d frames in %s", skipped, len(results), path)
        if not embeddings:
            raise NoFramesProcessedError(path, attempted=len(results))
        return average_embeddings(embeddings)

    def sample_frames(self, path: Path) -> list[FrameResult]:
        """Try every sample point and report each one as a `FrameResult`."""
        try:
            duration_ms = self.frame_extractor.estimate_duration_ms(path)
        except Exception as exc:
            LOGGER.debug("Could not read duration of %s: %s", path, exc)
            duration_ms = None
        if not duration_ms:
            duration_ms = self.fallback_duration_ms
        return [
            self._embed_frame(path, timestamp)
            for timestamp in frame_timestamps(duration_ms, self.frame_count)
        ]

    def _embed_frame(self, path: Path, timestamp_ms: int) -> FrameResult:
        frame_path: Path | None = None
        try:
            frame_path = self.frame_extractor.extract_frame(path, timestamp_ms)
            pixels = self.preprocess(frame_path)
            embedding = as_vector(self.vision_embedder.embed(pixels))
        except Exception as exc:
            LOGGER.debug("Frame at %d ms of %s failed: %s", timestamp_ms, path, exc)
            return FrameResult(timestamp_ms=timestamp_ms, error=str(exc))
        finally:
            if frame_path is not None:
                Path(frame_path).unlink(missing_ok=True)
        return FrameResult(timestamp_ms=timestamp_ms, embedding=embedding)
