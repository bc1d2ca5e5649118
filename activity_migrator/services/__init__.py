"""Collaborators the migrations read from and write to."""

__all__ = [
    "interfaces",
    "schema",
    "sql",
]
