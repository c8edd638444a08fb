"""Hybrid article search service."""
