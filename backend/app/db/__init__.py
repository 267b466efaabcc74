"""Database interface and repository abstractions.

This package holds the map layer record model and the repositories that
persist it. Production code talks to PostGIS through
PostgresMapLayerRepository; tests and local runs can use the in-memory
InMemoryMapLayerRepository, which implements the same protocol.

Example:
    Use in a service or FastAPI dependency:
        >>> from app.db import database
        >>> repo = database.get_map_layer_repository(settings)
"""
