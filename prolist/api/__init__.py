"""Public JSON API."""
