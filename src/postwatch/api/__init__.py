"""HTTP API for the Postwatch application."""
