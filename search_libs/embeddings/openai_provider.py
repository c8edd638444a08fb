"""OpenAI embeddings client.

Wraps ``AsyncOpenAI.embeddings.create``. The SDK's built-in retries are
disabled: a failed call is reported to the caller as-is.
"""

import time
from typing import Optional

import numpy as np
import structlog
from openai import AsyncOpenAI, OpenAIError

from ..common.config import BaseConfig
from ..common.metrics import MetricsCollector
from .base import EmbeddingProvider, EmbeddingProviderError

logger = structlog.get_logger("embeddings.openai")


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by the OpenAI API."""

    def __init__(
        self,
        model_name: str = "text-embedding-3-small",
        dimension: int = 1536,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        self.model_name = model_name
        self.dimension = dimension
        self.metrics_collector = metrics_collector
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def embed(self, text: str) -> np.ndarray:
        start_time = time.time()
        try:
            response = await self.client.embeddings.create(
                model=self.model_name,
                input=text,
            )
        except OpenAIError as e:
            self._record(start_time, "error")
            logger.error("Embedding request failed", model=self.model_name, error=str(e))
            raise EmbeddingProviderError(f"Embedding request failed: {e}")

        if not response.data:
            self._record(start_time, "error")
            raise EmbeddingProviderError("Embedding response contained no data")

        vector = np.asarray(response.data[0].embedding, dtype=np.float32)
        if vector.ndim != 1 or vector.shape[0] != self.dimension:
            self._record(start_time, "error")
            raise EmbeddingProviderError(
                f"Expected embedding dimension {self.dimension}, got {vector.shape}"
            )

        self._record(start_time, "success")
        logger.debug("Embedding generated", model=self.model_name, dimension=vector.shape[0])
        return vector

    def _record(self, start_time: float, status: str) -> None:
        if self.metrics_collector:
            self.metrics_collector.record_embedding(
                model_name=self.model_name,
                duration=time.time() - start_time,
                status=status
            )

    async def close(self) -> None:
        await self.client.close()


def create_embedding_provider(
    config: BaseConfig,
    metrics_collector: Optional[MetricsCollector] = None
) -> OpenAIEmbeddingProvider:
    """Build the provider from ``HS_EMBEDDING_*`` / ``HS_OPENAI_*`` settings."""
    if not config.hs_openai_api_key:
        logger.warning("OpenAI API key not configured. Embedding calls will fail.")

    return OpenAIEmbeddingProvider(
        model_name=config.hs_embedding_model,
        dimension=config.hs_embedding_dimension,
        api_key=config.hs_openai_api_key or "missing",
        base_url=config.hs_openai_base_url,
        timeout=config.hs_openai_timeout,
        metrics_collector=metrics_collector,
    )
