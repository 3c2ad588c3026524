"""HTTP API over the session controller."""
