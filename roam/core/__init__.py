"""Shared infrastructure: paths, exceptions and logging."""
