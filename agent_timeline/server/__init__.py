"""HTTP server exposing the timeline service through FastAPI."""
