"""Service wiring for the API layer."""
