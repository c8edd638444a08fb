"""Search service package.

Layout:
- ``api``: HTTP endpoints for keyword search, hybrid search, and documents.
- ``hybrid``: the ``SearchManager`` running both retrieval paths.
- ``runtime``: service-local metrics helpers.
- ``client``: async HTTP client issuing both searches concurrently.
"""
