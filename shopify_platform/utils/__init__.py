"""Shop and host sanitization helpers."""
