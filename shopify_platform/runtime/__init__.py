"""Request normalization and host-framework integration."""
