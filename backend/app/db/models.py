"""Data models for map layer records.

This module defines the persistent map layer record. A layer is a flat,
independent row: a store-assigned integer id, a label, and a geometry kept
as Well-Known Text in SRID 4326 (WGS84).

Example:
    Creating an unsaved layer:
        >>> from app.db.models import MapLayer
        >>> layer = MapLayer(
        ...     id=None,
        ...     name="Test Layer",
        ...     geom="POLYGON((0 0, 0 10, 10 10, 10 0, 0 0))",
        ... )
"""

from __future__ import annotations

import dataclasses

SRID = 4326


@dataclasses.dataclass(frozen=True)
class MapLayer:
    """A named geometry stored in the ``map_layers`` table.

    Attributes:
        id: Store-assigned identifier, None until the layer is persisted.
        name: Human-readable layer name.
        geom: Geometry as WKT, e.g. ``POLYGON((0 0, 0 10, 10 10, 10 0, 0 0))``.
    """

    id: int | None
    name: str
    geom: str
