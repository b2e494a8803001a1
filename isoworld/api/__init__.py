"""REST API over the world facade."""
