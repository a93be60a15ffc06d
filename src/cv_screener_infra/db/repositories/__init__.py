"""Repositories: CRUD over the ORM tables, one session per unit of work."""
