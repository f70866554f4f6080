"""HTTP layer - FastAPI application, routes and request models."""
