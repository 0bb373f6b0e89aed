"""Core infrastructure: configuration-driven logging, database and errors."""
