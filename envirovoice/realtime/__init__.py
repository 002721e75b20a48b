"""Realtime core: connection registry, presence state, routing and fanout."""
