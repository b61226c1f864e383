"""AI-assisted financial document import: extraction pipeline, reconciliation, and HTTP API."""
