"""Request and response models for the map layer API.

These pydantic models are the HTTP contract only; they are never persisted.
Domain records (app.db.models.MapLayer) are converted at the router
boundary via MapLayerDto.from_layer.
"""

from __future__ import annotations

import pydantic

from app.db import models as db_models


class MapLayerDto(pydantic.BaseModel):
    id: int
    name: str
    geom: str

    @classmethod
    def from_layer(cls, layer: db_models.MapLayer) -> MapLayerDto:
        """Build the response shape of a persisted layer.

        Raises:
            ValueError: If the layer has not been assigned an id.
        """
        if layer.id is None:
            raise ValueError("MapLayer id cannot be null")
        return cls(id=layer.id, name=layer.name, geom=layer.geom)


class CreateMapLayerRequest(pydantic.BaseModel):
    """Body of POST /map-layers; blank fields are rejected by the router."""

    name: str
    geom: str


class LocationQuery(pydantic.BaseModel):
    latitude: float
    longitude: float


class SearchResultDto(pydantic.BaseModel):
    query: LocationQuery
    results: list[MapLayerDto]
    count: int


class ErrorResponse(pydantic.BaseModel):
    status: int
    error: str
    message: str
    path: str | None = None
