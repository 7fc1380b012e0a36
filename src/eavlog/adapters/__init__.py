"""Adapters connecting the core to SQLite and Python logging."""
