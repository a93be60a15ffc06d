"""Analysis pipeline orchestration."""
