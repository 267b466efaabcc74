"""Business services sitting between the API routers and repositories."""
