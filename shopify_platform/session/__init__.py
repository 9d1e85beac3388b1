"""Per-shop session model and session-id helpers."""
