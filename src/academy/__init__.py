"""AI Academy dashboard API."""
