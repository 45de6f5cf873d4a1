"""Command-line interface for codex authentication."""
