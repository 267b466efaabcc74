"""Database helpers and repositories for map layers."""

from __future__ import annotations

import contextlib
import itertools
import logging
import threading
from typing import TYPE_CHECKING, Protocol, cast

import psycopg2.extensions
import psycopg2.extras
import psycopg2.pool
from shapely import geometry, wkt

from app.db import models as db_models

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from app.core import config

logger = logging.getLogger(__name__)


class MapLayerRepositoryProtocol(Protocol):
    """Protocol interface for storing and querying map layers.

    Implementations provide persistence for MapLayer records,
    supporting both in-memory (testing) and PostGIS (production) backends.
    """

    def find_containing(
        self,
        latitude: float,
        longitude: float,
    ) -> list[db_models.MapLayer]: ...

    def save(self, layer: db_models.MapLayer) -> db_models.MapLayer: ...

    def find_all(self) -> list[db_models.MapLayer]: ...

    def find_by_id(self, layer_id: int) -> db_models.MapLayer | None: ...


class InMemoryMapLayerRepository(MapLayerRepositoryProtocol):
    """Simple in-memory store for tests and local development.

    Ids are assigned from a counter starting at 1. Containment is evaluated
    with shapely, which follows the same DE-9IM rules as ``ST_Contains``:
    a point lying exactly on a polygon boundary is not contained.
    """

    def __init__(self) -> None:
        """Initialize an empty in-memory repository."""
        self._store: dict[int, db_models.MapLayer] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def find_containing(
        self,
        latitude: float,
        longitude: float,
    ) -> list[db_models.MapLayer]:
        """Return every stored layer whose geometry contains the point.

        Args:
            latitude: Y coordinate of the point.
            longitude: X coordinate of the point.

        Returns:
            Matching layers in id order.
        """
        point = geometry.Point(longitude, latitude)
        return [
            layer
            for layer in self.find_all()
            if wkt.loads(layer.geom).contains(point)
        ]

    def save(self, layer: db_models.MapLayer) -> db_models.MapLayer:
        """Store a layer under a freshly assigned id.

        Any id already set on ``layer`` is ignored. The geometry is parsed
        first so malformed WKT is rejected here, as ``ST_GeomFromText``
        rejects it on insert.

        Args:
            layer: Layer to persist.

        Returns:
            The stored layer with its id populated.

        Raises:
            shapely.errors.ShapelyError: If ``layer.geom`` is not valid WKT.
        """
        wkt.loads(layer.geom)
        with self._lock:
            saved = db_models.MapLayer(
                id=next(self._ids),
                name=layer.name,
                geom=layer.geom,
            )
            self._store[cast(int, saved.id)] = saved
        return saved

    def find_all(self) -> list[db_models.MapLayer]:
        with self._lock:
            return [self._store[key] for key in sorted(self._store)]

    def find_by_id(self, layer_id: int) -> db_models.MapLayer | None:
        return self._store.get(layer_id)


class PostgresMapLayerRepository(MapLayerRepositoryProtocol):
    """PostgreSQL/PostGIS-backed repository for map layers.

    Holds a thread-safe connection pool. Every public call checks out one
    connection, commits on success, rolls back on failure and always returns
    the connection to the pool. Geometry is written from WKT with
    ``ST_GeomFromText`` and always read back through ``ST_AsText``.
    """

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS map_layers (
      id BIGSERIAL PRIMARY KEY,
      name TEXT NOT NULL,
      geom geometry(Geometry, 4326) NOT NULL
    );
    """

    CREATE_INDEX_SQL = """
    CREATE INDEX IF NOT EXISTS map_layers_geom_idx
      ON map_layers USING GIST (geom);
    """

    FIND_CONTAINING_SQL = """
    SELECT id, name, ST_AsText(geom) AS geom
    FROM map_layers
    WHERE ST_Contains(
        geom,
        ST_SetSRID(ST_MakePoint(%(longitude)s, %(latitude)s), 4326)
    )
    ORDER BY id;
    """

    INSERT_SQL = """
    INSERT INTO map_layers (name, geom)
    VALUES (%(name)s, ST_GeomFromText(%(geom)s, 4326))
    RETURNING id, name, ST_AsText(geom) AS geom;
    """

    FIND_ALL_SQL = """
    SELECT id, name, ST_AsText(geom) AS geom
    FROM map_layers
    ORDER BY id;
    """

    FIND_BY_ID_SQL = """
    SELECT id, name, ST_AsText(geom) AS geom
    FROM map_layers
    WHERE id = %(id)s;
    """

    def __init__(
        self,
        settings: config.Settings,
        pool: psycopg2.pool.AbstractConnectionPool | None = None,
    ) -> None:
        """Initialize repository with database settings.

        Args:
            settings: Application settings containing database connection
                URL and pool sizing.
            pool: Pre-built connection pool. A ThreadedConnectionPool is
                created from ``settings`` when omitted.
        """
        self.settings = settings
        owns_pool = pool is None
        self._pool = pool or psycopg2.pool.ThreadedConnectionPool(
            settings.db_pool_min_size,
            settings.db_pool_max_size,
            settings.database_url,
        )
        # ThreadedConnectionPool raises PoolError when exhausted; callers
        # wait on this instead.
        self._slots = threading.BoundedSemaphore(settings.db_pool_max_size)
        try:
            self._ensure_schema()
        except Exception:
            if owns_pool:
                self._pool.closeall()
            raise

    @contextlib.contextmanager
    def _connection(self) -> Iterator[psycopg2.extensions.connection]:
        """Check out a pooled connection for the duration of one call.

        Blocks while every pooled connection is in use, for at most
        ``settings.db_pool_timeout`` seconds.

        Raises:
            psycopg2.pool.PoolError: If no connection frees up in time.
        """
        if not self._slots.acquire(timeout=self.settings.db_pool_timeout):
            raise psycopg2.pool.PoolError(
                "timed out waiting for a pooled connection"
            )
        try:
            conn = self._pool.getconn()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                self._pool.putconn(conn)
        finally:
            self._slots.release()

    def _ensure_schema(self) -> None:
        """Ensure PostGIS extension, map_layers table and index exist."""
        with self._connection() as conn, conn.cursor() as cur:
            cur.execute("CREATE EXTENSION IF NOT EXISTS postgis;")
            cur.execute(self.CREATE_TABLE_SQL)
            cur.execute(self.CREATE_INDEX_SQL)
        logger.info("map_layers schema ready")

    def _fetch_all(
        self,
        sql: str,
        params: Mapping[str, object] | None = None,
    ) -> list[db_models.MapLayer]:
        with self._connection() as conn, conn.cursor(
            cursor_factory=psycopg2.extras.RealDictCursor,
        ) as cur:
            cur.execute(sql, params)
            return [self._from_row(row) for row in cur.fetchall()]

    def _fetch_one(
        self,
        sql: str,
        params: Mapping[str, object],
    ) -> db_models.MapLayer | None:
        with self._connection() as conn, conn.cursor(
            cursor_factory=psycopg2.extras.RealDictCursor,
        ) as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
        if row is None:
            return None
        return self._from_row(row)

    def find_containing(
        self,
        latitude: float,
        longitude: float,
    ) -> list[db_models.MapLayer]:
        # ST_MakePoint takes (x, y): longitude first.
        return self._fetch_all(
            self.FIND_CONTAINING_SQL,
            {"latitude": latitude, "longitude": longitude},
        )

    def save(self, layer: db_models.MapLayer) -> db_models.MapLayer:
        saved = self._fetch_one(self.INSERT_SQL, self._to_row(layer))
        if saved is None:
            raise RuntimeError("INSERT into map_layers returned no row")
        return saved

    def find_all(self) -> list[db_models.MapLayer]:
        return self._fetch_all(self.FIND_ALL_SQL)

    def find_by_id(self, layer_id: int) -> db_models.MapLayer | None:
        return self._fetch_one(self.FIND_BY_ID_SQL, {"id": layer_id})

    def close(self) -> None:
        """Close every pooled connection."""
        self._pool.closeall()

    @staticmethod
    def _to_row(layer: db_models.MapLayer) -> dict[str, object]:
        """Convert MapLayer to insert parameters.

        The id is left out so the database assigns it.

        Args:
            layer: Layer to convert.

        Returns:
            Dictionary suitable for parameterized SQL insertion.
        """
        return {"name": layer.name, "geom": layer.geom}

    @staticmethod
    def _from_row(row: Mapping[str, object]) -> db_models.MapLayer:
        """Convert a database row to MapLayer.

        Args:
            row: Mapping from a RealDictCursor query result.

        Returns:
            MapLayer with all fields populated.
        """
        return db_models.MapLayer(
            id=int(cast(int, row["id"])),
            name=str(row["name"]),
            geom=str(row["geom"]),
        )


def get_map_layer_repository(
    settings: config.Settings,
) -> MapLayerRepositoryProtocol:
    """Factory function to create a map layer repository.

    Args:
        settings: Application settings for database connection.

    Returns:
        PostgresMapLayerRepository instance for production use.
    """
    return PostgresMapLayerRepository(settings)
