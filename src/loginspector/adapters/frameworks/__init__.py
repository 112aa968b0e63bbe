"""HTTP adapters exposing the log service."""
