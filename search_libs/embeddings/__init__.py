"""Embedding provider clients.

- ``base``: ``EmbeddingProvider`` interface and ``EmbeddingProviderError``.
- ``openai_provider``: OpenAI embeddings API client (no retries).
"""
