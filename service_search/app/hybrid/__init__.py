"""Retrieval orchestration.

Includes the ``SearchManager`` which runs the keyword path and the
embedding-backed hybrid path independently.
"""
