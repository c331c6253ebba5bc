"""Core infrastructure: configuration, logging, canonical serialization."""
