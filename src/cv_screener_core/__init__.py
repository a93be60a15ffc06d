"""Core domain types, settings and errors for cv-screener."""
