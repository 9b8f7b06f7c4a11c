"""HTTP and WebSocket routers for the viewer."""
