"""Admin API clients."""
