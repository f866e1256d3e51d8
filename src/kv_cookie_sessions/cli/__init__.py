"""Command-line interface for kv-cookie-sessions."""
