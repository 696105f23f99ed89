"""API routers for the Context Store."""
