"""HTTP API for cv-screener."""
