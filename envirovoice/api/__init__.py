"""HTTP and websocket routers for the relay."""
