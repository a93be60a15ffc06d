"""Services built on the database: credits, templates and comparison."""
