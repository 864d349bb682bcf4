"""Shared infrastructure: configuration, errors, logging, clock, CLI."""
