"""Utility scripts for operating the search service.

Scripts include:
- ``init_db.py``: create the articles table, indexes, and ``hybrid_search``.
- ``backfill_embeddings.py``: embed documents that lack an embedding.
"""
