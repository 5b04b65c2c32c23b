"""Shared helpers: HTTP, logging, errors, concurrency."""
