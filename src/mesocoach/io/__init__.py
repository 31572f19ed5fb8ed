"""Persistence: JSON serialization, storage vocabulary translation and the file store."""
