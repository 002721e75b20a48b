"""Application factory and lifecycle for the relay."""
