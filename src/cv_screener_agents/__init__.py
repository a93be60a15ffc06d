"""Agents, tools and orchestration for cv-screener."""
