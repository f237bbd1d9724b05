"""Zoom-dependent grid clustering of map markers."""

from .interfaces import (
    CellKey,
    Cluster,
    LatLng,
    MapProvider,
    Marker,
    MarkerHandle,
    MarkerStyle,
)
from .config import ClusteringSettings, load_settings
from .grid import (
    Active,
    Disabled,
    GridState,
    InvalidGeometryError,
    calculate_cell_size,
    encode_cell,
    encode_cells,
    grid_state_for_zoom,
)
from .cluster_marker import ClusterMarker
from .strategy import (
    ClusteringStateError,
    ClusteringStrategy,
    GridClusteringStrategy,
    NoClusteringStrategy,
    NotTrackedError,
    create_strategy,
    list_strategies,
)
from .memory_map import InMemoryMap, InMemoryMarkerHandle, SimpleMarker

__all__ = [
    "CellKey",
    "Cluster",
    "LatLng",
    "MapProvider",
    "Marker",
    "MarkerHandle",
    "MarkerStyle",
    "ClusteringSettings",
    "load_settings",
    "Active",
    "Disabled",
    "GridState",
    "InvalidGeometryError",
    "calculate_cell_size",
    "encode_cell",
    "encode_cells",
    "grid_state_for_zoom",
    "ClusterMarker",
    "ClusteringStateError",
    "ClusteringStrategy",
    "GridClusteringStrategy",
    "NoClusteringStrategy",
    "NotTrackedError",
    "create_strategy",
    "list_strategies",
    "InMemoryMap",
    "InMemoryMarkerHandle",
    "SimpleMarker",
]
