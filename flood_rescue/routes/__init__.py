"""HTTP routers for the presentation layer."""
