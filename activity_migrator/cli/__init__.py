"""Command-line interface for the activity notification migrations."""
