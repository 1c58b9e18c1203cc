"""Agency portal API server."""
