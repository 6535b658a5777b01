"""Embedding model management.

Text and images are embedded into the same CLIP ViT-L/14 space so that a text
query can match pictures and video frames as well as documents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
import torch
from sentence_transformers import SentenceTransformer
from transformers import CLIPModel

DEFAULT_TEXT_MODEL = "sentence-transformers/clip-ViT-L-14"
DEFAULT_VISION_MODEL = "openai/clip-vit-large-patch14"
EMBEDDING_DIMENSION = 768

logger = logging.getLogger(__name__)


def detect_device() -> str:
    """Pick the best available torch device.

    Returns one of ``"cuda"`` (NVIDIA or ROCm builds), ``"mps"`` (Apple
    Silicon) or ``"cpu"``.
    """
    try:
        if torch.cuda.is_available():
            logger.debug(f"CUDA GPU detected: {torch.cuda.get_device_name(0)}")
            return "cuda"
        if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
            logger.debug("Apple MPS GPU detected")
            return "mps"
    except Exception as e:
        logger.debug(f"GPU detection failed: {e}")
    logger.debug("No GPU detected, will use CPU")
    return "cpu"


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_TEXT_MODEL
    vision_model_name: str = DEFAULT_VISION_MODEL
    batch_size: int = 16
    normalize: bool = True
    device: str | None = None
    dimension: int = EMBEDDING_DIMENSION


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` for query and document text."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        if self.config.device is None:
            self.config.device = detect_device()

        self._model = SentenceTransformer(self.config.model_name, device=self.config.device)
        # CLIP checkpoints do not always report a pooling dimension
        self.dimension = int(
            self._model.get_sentence_embedding_dimension() or self.config.dimension
        )
        logger.info(
            f"Loaded text model {self.config.model_name} "
            f"(device: {self.config.device}, dimension: {self.dimension})"
        )

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        sentences = list(texts)
        embeddings = self._model.encode(
            sentences,
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return embeddings.astype("float32", copy=False)

    def embed_query(self, text: str) -> np.ndarray:
        """Convenience wrapper for single-text embedding."""
        return self.embed([text])[0]


class VisionEmbeddingModel:
    """CLIP image tower fed with already preprocessed pixel tensors."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        if self.config.device is None:
            self.config.device = detect_device()

        self._model = CLIPModel.from_pretrained(self.config.vision_model_name)
        self._model.to(self.config.device)
        self._model.eval()
        self.dimension = int(self._model.config.projection_dim)
        logger.info(
            f"Loaded vision model {self.config.vision_model_name} "
            f"(device: {self.config.device}, dimension: {self.dimension})"
        )

    def embed(self, pixels: np.ndarray) -> np.ndarray:
        """Embed one ``(3, H, W)`` tensor and return a float32 vector."""
        batch = torch.from_numpy(np.asarray(pixels, dtype="float32")).unsqueeze(0)
        batch = batch.to(self.config.device)
        with torch.no_grad():
            features = self._model.get_image_features(pixel_values=batch)
            if self.config.normalize:
                features = torch.nn.functional.normalize(features, dim=-1)
        return features[0].cpu().numpy().astype("float32", copy=False)
