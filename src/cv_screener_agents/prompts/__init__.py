"""Versioned prompt templates for LLM calls."""
