"""Command line interface for cv-screener."""
