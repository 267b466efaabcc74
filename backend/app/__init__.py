"""App package initializer for the map layers FastAPI service.

This package contains a small REST backend that stores named geometries
("map layers") in PostGIS and answers point-in-polygon searches over them.
Geometries are exchanged as WKT in SRID 4326 (WGS84); the containment test
itself is delegated to PostGIS ``ST_Contains``.

- Routers validate request shape and coordinate ranges
- MapLayerService applies the business rules and logs operations
- Repositories issue parameterized SQL over a pooled psycopg2 connection
- Designed for FastAPI dependency injection and testability with an
  in-memory repository

See README and module sub-docstrings for details on architecture and usage.
"""
