"""Embedding provider interface."""

from abc import ABC, abstractmethod

import numpy as np


class EmbeddingProvider(ABC):
    """Turns text into a fixed-length vector.

    Implementations make exactly one provider call per ``embed`` and never
    retry; failures surface as ``EmbeddingProviderError``.
    """

    model_name: str = "unknown"
    dimension: int = 0

    @abstractmethod
    async def embed(self, text: str) -> np.ndarray:
        """Return a 1-D float32 vector of length ``dimension``."""
        pass

    async def close(self) -> None:
        return None


class EmbeddingProviderError(Exception):
    """Network, authentication, rate-limit, or response-shape failure."""
    pass
