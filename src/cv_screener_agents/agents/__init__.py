"""Pipeline agents."""
