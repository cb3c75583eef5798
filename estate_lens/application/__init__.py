"""Application layer - use cases and port definitions."""
