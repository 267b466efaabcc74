"""Map layer business rules.

This module validates coordinates for point searches, turns creation
requests into MapLayer records, and delegates persistence and spatial
queries to a MapLayerRepositoryProtocol implementation. It holds no
request-scoped state, so one instance can serve concurrent requests.

Coordinate bounds are inclusive and defined once here; the HTTP guards in
app.api.map_layers reuse LATITUDE_RANGE and LONGITUDE_RANGE so both layers
enforce identical limits. The checks in this module are the canonical ones
for callers that do not go through HTTP.

Example:
    Search with an in-memory repository:
        >>> from app.db import database
        >>> service = MapLayerService(database.InMemoryMapLayerRepository())
        >>> service.find_layers_containing_point(25.25, 22.27)
        []
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, NamedTuple

from app.db import models as db_models

if TYPE_CHECKING:
    from app.api import schemas
    from app.db import database

logger = logging.getLogger(__name__)


class CoordinateRange(NamedTuple):
    minimum: float
    maximum: float

    def includes(self, value: float) -> bool:
        """Inclusive bounds check; NaN is never included."""
        if math.isnan(value):
            return False
        return self.minimum <= value <= self.maximum


LATITUDE_RANGE = CoordinateRange(-90.0, 90.0)
LONGITUDE_RANGE = CoordinateRange(-180.0, 180.0)


class InvalidArgumentError(ValueError):
    """Raised when a caller passes a semantically invalid argument."""


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Ensure a point lies within WGS84 latitude/longitude bounds.

    Args:
        latitude: Latitude in decimal degrees, inclusive range [-90, 90].
        longitude: Longitude in decimal degrees, inclusive range [-180, 180].

    Raises:
        InvalidArgumentError: If either coordinate is out of range or NaN.
    """
    if not LATITUDE_RANGE.includes(latitude):
        raise InvalidArgumentError(
            f"Latitude must be between -90 and 90, got: {latitude}"
        )
    if not LONGITUDE_RANGE.includes(longitude):
        raise InvalidArgumentError(
            f"Longitude must be between -180 and 180, got: {longitude}"
        )


class MapLayerService:
    """Coordinates validation, logging and persistence of map layers."""

    def __init__(
        self,
        repository: database.MapLayerRepositoryProtocol,
    ) -> None:
        self.repository = repository

    def find_layers_containing_point(
        self,
        latitude: float,
        longitude: float,
    ) -> list[db_models.MapLayer]:
        """Find every layer whose geometry contains the given point.

        Args:
            latitude: Latitude of the point (Y coordinate).
            longitude: Longitude of the point (X coordinate).

        Returns:
            Layers returned by the repository, unmodified.

        Raises:
            InvalidArgumentError: If the coordinates are out of range.
        """
        validate_coordinates(latitude, longitude)

        logger.info(
            "Finding layers containing point: lat=%s, lon=%s",
            latitude,
            longitude,
        )
        layers = self.repository.find_containing(latitude, longitude)
        logger.info("Found %d layers containing the point", len(layers))

        return layers

    def create_map_layer(
        self,
        request: schemas.CreateMapLayerRequest,
    ) -> db_models.MapLayer:
        """Persist a new layer built from a creation request.

        Args:
            request: Validated request carrying name and WKT geometry.

        Returns:
            The stored layer with its assigned id.
        """
        logger.info("Creating new map layer: %s", request.name)

        saved = self.repository.save(
            db_models.MapLayer(id=None, name=request.name, geom=request.geom)
        )
        logger.info("Created map layer with id: %s", saved.id)

        return saved

    def find_all(self) -> list[db_models.MapLayer]:
        logger.debug("Finding all map layers")
        return list(self.repository.find_all())

    def find_by_id(self, layer_id: int) -> db_models.MapLayer | None:
        logger.debug("Finding map layer by id: %s", layer_id)
        return self.repository.find_by_id(layer_id)
