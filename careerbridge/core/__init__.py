"""Core infrastructure: configuration, logging, database."""
