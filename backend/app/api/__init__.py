"""API router subpackage for the map layers backend.

Submodules:
    - map_layers: Endpoints for creating, listing, fetching and spatially
      searching map layers.
    - schemas: Request/response models of the HTTP contract.
    - errors: Translation of validation, argument and unexpected errors
      into uniform error payloads.
"""
