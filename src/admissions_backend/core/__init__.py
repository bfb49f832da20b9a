"""Core infrastructure: configuration, logging, database and error handling."""
