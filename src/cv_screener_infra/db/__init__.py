"""Async SQLAlchemy database layer."""
