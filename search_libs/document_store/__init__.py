"""Document store adapters.

Primary components:
- ``base``: abstract ``DocumentStore`` interface, document types, exceptions.
- ``postgres``: PostgreSQL/pgvector implementation.
- ``memory``: in-memory implementation scoring in the application layer.
- ``schema``: DDL for the articles table and the ``hybrid_search`` function.
- ``factory``: helpers to construct a store from typed config.

Guidance:
- Prefer constructing via ``factory.create_document_store`` so runtime
  services remain decoupled from specific backends.
"""
