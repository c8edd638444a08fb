"""Shared libraries for the hybrid search services.

Subpackages:
- ``search_libs.common``: configuration, logging, and metrics.
- ``search_libs.document_store``: article storage with full-text and vector
  scoring, backed by PostgreSQL/pgvector or memory.
- ``search_libs.embeddings``: embedding provider clients.
- ``search_libs.ranking``: text and vector relevance signals and their fusion.

Notes:
- Avoid service-specific logic; keep modules cohesive and broadly useful.
"""
