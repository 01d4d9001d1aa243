"""HTTP routers: REST pass-through and preview session endpoints."""
