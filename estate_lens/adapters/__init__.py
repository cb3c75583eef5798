"""Adapters - concrete implementations of application ports."""
