"""Tests for the hybrid article search packages.

Unit tests run against the in-memory document store and fake embedding
providers; ``tests/integration`` exercises PostgreSQL when one is available.
"""
