"""Tools used by agents: PDF parsing, anonymization, e-mail and auth."""
