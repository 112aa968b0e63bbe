"""Adapters connecting the log store to SQLite and to HTTP frameworks."""
