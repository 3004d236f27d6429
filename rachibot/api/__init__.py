"""HTTP routers mounted by the FastAPI app."""
