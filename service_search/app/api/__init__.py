"""API subpackage for the search service.

Routers expose the two search endpoints, document upserts and point reads,
and index stats. Transport layer remains thin and delegates to
``SearchManager``.
"""
