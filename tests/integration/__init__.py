"""Integration tests that need a running PostgreSQL with pgvector.

Skipped unless ``HS_TEST_DATABASE_DSN`` points at a reachable database.
"""
