"""HTTP and WebSocket routers for the storefront server."""
