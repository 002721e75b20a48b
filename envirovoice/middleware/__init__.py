"""ASGI middleware for the relay."""
