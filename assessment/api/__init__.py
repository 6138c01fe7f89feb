"""HTTP API for the assessment session engine."""
