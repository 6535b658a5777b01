"""Vector helpers shared by the embedders and the store."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from omnifind.errors import DimensionMismatchError, EmptyInputError


def as_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """Return ``values`` as a flat float32 array."""
    return np.asarray(values, dtype="float32").reshape(-1)


def average_embeddings(embeddings: Sequence[np.ndarray]) -> np.ndarray:
    """Element-wise mean of equal-length vectors.

    A single vector is returned as is. The mean is not renormalised.
    """
    if len(embeddings) == 0:
        raise EmptyInputError("No embeddings to average")
    if len(embeddings) == 1:
        return embeddings[0]

    dimension = len(embeddings[0])
    for embedding in embeddings[1:]:
        if len(embedding) != dimension:
            raise DimensionMismatchError(dimension, len(embedding), component="aggregator")

    stacked = np.vstack([as_vector(embedding) for embedding in embeddings])
    return stacked.mean(axis=0, dtype="float64").astype("float32")
