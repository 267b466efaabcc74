"""Map layer CRUD and point-in-polygon search endpoints.

This module binds the map layer routes, performs the request guard checks
(coordinate ranges, non-blank fields), delegates to MapLayerService and
maps domain records to DTOs. Errors are translated to responses by the
handlers in app.api.errors; a lookup that finds nothing is answered here
with an empty 404.

Geometries travel as WKT in SRID 4326 in both directions.

Example:
    Create a layer and search for a point inside it:
        >>> response = client.post(
        ...     "/api/v1/map-layers",
        ...     json={
        ...         "name": "Test Layer",
        ...         "geom": "POLYGON((0 0, 0 10, 10 10, 10 0, 0 0))",
        ...     },
        ... )
        >>> response.status_code
        201
        >>> response = client.get(
        ...     "/api/v1/map-layers/search",
        ...     params={"latitude": 5, "longitude": 5},
        ... )
        >>> response.json()["count"]
        1
"""

from __future__ import annotations

import logging
import math

import fastapi
from fastapi import status

from app.api import errors, schemas
from app.db import database
from app.services import map_layers as map_layer_service

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix="/map-layers", tags=["map-layers"])


def _get_repo(request: fastapi.Request) -> database.MapLayerRepositoryProtocol:
    """Resolve the repository wired into the application at startup.

    Args:
        request: Incoming request, used to reach ``app.state``.

    Returns:
        MapLayerRepositoryProtocol implementation
            (PostgresMapLayerRepository in production).
    """
    return request.app.state.map_layer_repository


def _get_service(
    repo: database.MapLayerRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> map_layer_service.MapLayerService:
    return map_layer_service.MapLayerService(repo)


def _range_violations(
    field: str,
    label: str,
    value: float,
    bounds: map_layer_service.CoordinateRange,
) -> list[errors.Violation]:
    if math.isnan(value):
        return [errors.Violation(field, f"{label} must be a number")]
    if value < bounds.minimum:
        return [
            errors.Violation(field, f"{label} must be >= {bounds.minimum:g}")
        ]
    if value > bounds.maximum:
        return [
            errors.Violation(field, f"{label} must be <= {bounds.maximum:g}")
        ]
    return []


def _check_location(latitude: float, longitude: float) -> None:
    """Reject out-of-range coordinates before they reach the service.

    Raises:
        RequestValidationFailed: Listing every coordinate that is invalid.
    """
    violations = _range_violations(
        "latitude", "Latitude", latitude, map_layer_service.LATITUDE_RANGE
    ) + _range_violations(
        "longitude", "Longitude", longitude, map_layer_service.LONGITUDE_RANGE
    )
    if violations:
        raise errors.RequestValidationFailed(violations)


def _check_create_request(request: schemas.CreateMapLayerRequest) -> None:
    """Reject creation requests with a blank name or geometry.

    Raises:
        RequestValidationFailed: Listing every blank field.
    """
    violations = []
    if not request.name.strip():
        violations.append(errors.Violation("name", "Name is required"))
    if not request.geom.strip():
        violations.append(errors.Violation("geom", "Geometry is required"))
    if violations:
        raise errors.RequestValidationFailed(violations)


@router.get("/search", response_model=schemas.SearchResultDto)
def find_layers_containing_point(
    latitude: float = fastapi.Query(),  # noqa: B008
    longitude: float = fastapi.Query(),  # noqa: B008
    service: map_layer_service.MapLayerService = fastapi.Depends(_get_service),  # noqa: B008
) -> schemas.SearchResultDto:
    """Search for layers whose geometry contains a point.

    Args:
        latitude: Latitude in decimal degrees, -90 to 90 inclusive.
        longitude: Longitude in decimal degrees, -180 to 180 inclusive.
        service: Map layer service (injected via FastAPI Depends).

    Returns:
        The echoed query, the matching layers and their count.

    Raises:
        RequestValidationFailed: If a coordinate is out of range (400).

    Example:
        >>> response = client.get(
        ...     "/api/v1/map-layers/search?latitude=25.25&longitude=22.27"
        ... )
        >>> # Returns: {"query": {"latitude": 25.25, "longitude": 22.27},
        >>> #           "results": [...], "count": 0}
    """
    logger.info(
        "Received search request for point: lat=%s, lon=%s",
        latitude,
        longitude,
    )
    _check_location(latitude, longitude)

    layers = service.find_layers_containing_point(latitude, longitude)
    results = [schemas.MapLayerDto.from_layer(layer) for layer in layers]

    return schemas.SearchResultDto(
        query=schemas.LocationQuery(latitude=latitude, longitude=longitude),
        results=results,
        count=len(results),
    )


@router.get("", response_model=list[schemas.MapLayerDto])
def get_all_layers(
    service: map_layer_service.MapLayerService = fastapi.Depends(_get_service),  # noqa: B008
) -> list[schemas.MapLayerDto]:
    """List every stored map layer."""
    logger.debug("Fetching all map layers")
    return [schemas.MapLayerDto.from_layer(layer) for layer in service.find_all()]


@router.get(
    "/{layer_id}",
    response_model=schemas.MapLayerDto,
    responses={status.HTTP_404_NOT_FOUND: {"description": "Layer not found"}},
)
def get_layer_by_id(
    layer_id: int,
    service: map_layer_service.MapLayerService = fastapi.Depends(_get_service),  # noqa: B008
) -> schemas.MapLayerDto | fastapi.Response:
    """Get a single map layer.

    Args:
        layer_id: Store-assigned layer id.
        service: Map layer service (injected via FastAPI Depends).

    Returns:
        The layer DTO, or an empty 404 response if no layer has that id.
    """
    logger.debug("Fetching layer with id: %s", layer_id)
    layer = service.find_by_id(layer_id)
    if layer is None:
        logger.warning("Layer not found with id: %s", layer_id)
        return fastapi.Response(status_code=status.HTTP_404_NOT_FOUND)

    return schemas.MapLayerDto.from_layer(layer)


@router.post(
    "",
    response_model=schemas.MapLayerDto,
    status_code=status.HTTP_201_CREATED,
)
def create_layer(
    request: schemas.CreateMapLayerRequest,
    service: map_layer_service.MapLayerService = fastapi.Depends(_get_service),  # noqa: B008
) -> schemas.MapLayerDto:
    """Create a new map layer from a name and a WKT geometry.

    Args:
        request: Body with non-blank ``name`` and ``geom``.
        service: Map layer service (injected via FastAPI Depends).

    Returns:
        The created layer, including its new id (201).

    Raises:
        RequestValidationFailed: If name or geom is blank (400).

    Example:
        >>> response = client.post(
        ...     "/api/v1/map-layers",
        ...     json={"name": "Test Layer",
        ...           "geom": "POLYGON((0 0, 0 10, 10 10, 10 0, 0 0))"},
        ... )
        >>> # Returns: {"id": 1, "name": "Test Layer",
        >>> #           "geom": "POLYGON((0 0, 0 10, 10 10, 10 0, 0 0))"}
    """
    _check_create_request(request)
    logger.info("Creating new map layer: %s", request.name)
    created = service.create_map_layer(request)
    return schemas.MapLayerDto.from_layer(created)
