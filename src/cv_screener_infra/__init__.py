"""Persistence and cache infrastructure for cv-screener."""
