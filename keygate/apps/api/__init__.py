"""HTTP API for key validation and administration."""
