"""
Grid geometry for marker clustering.

The map is cut into square cells of ``cell_size`` degrees. The size follows
the zoom level (each zoom step halves it) and a size of zero means markers
are not clustered at all.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

import numpy as np

from .config import ClusteringSettings
from .interfaces import CellKey, LatLng


LAT_OFFSET = 90.0
LON_OFFSET = 180.0

# Largest row/column index we hand out; keeps numpy int64 and Python ints in agreement
MAX_CELL_INDEX = 2**62


class InvalidGeometryError(ValueError):
    """Position, zoom or cell size outside the representable range."""


@dataclass(frozen=True)
class Disabled:
    """Clustering is off; every marker shows per its own desired visibility."""

    cell_size: float = 0.0


@dataclass(frozen=True)
class Active:
    """Clustering is on with square cells of ``cell_size`` degrees."""

    cell_size: float


GridState = Union[Disabled, Active]


def calculate_cell_size(zoom: float, settings: Optional[ClusteringSettings] = None) -> float:
    """Return the cell size in degrees for ``zoom``.

    ``2 ** floor(base_zoom - zoom) / size_divisor``. Past
    ``settings.max_clustering_zoom`` the size is ``0.0``.
    """
    settings = settings or ClusteringSettings()
    if not math.isfinite(zoom):
        raise InvalidGeometryError(f"zoom must be finite, got {zoom}")
    if zoom > settings.max_clustering_zoom:
        return 0.0
    exponent = math.floor(settings.base_zoom - zoom)
    try:
        size = math.ldexp(1.0, exponent) / settings.size_divisor
    except OverflowError:
        raise InvalidGeometryError(f"cell size for zoom {zoom} is not finite") from None
    if not math.isfinite(size) or size < 0:
        raise InvalidGeometryError(f"cell size for zoom {zoom} is invalid: {size}")
    return size


def grid_state_for_zoom(zoom: float, settings: Optional[ClusteringSettings] = None) -> GridState:
    size = calculate_cell_size(zoom, settings)
    if size == 0.0:
        return Disabled()
    return Active(size)


def validate_position(position: LatLng) -> LatLng:
    """Return ``position`` as floats or raise :class:`InvalidGeometryError`."""
    try:
        lat, lon = float(position[0]), float(position[1])
    except (TypeError, ValueError, IndexError):
        raise InvalidGeometryError(f"invalid position: {position!r}") from None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidGeometryError(f"position must be finite, got {position!r}")
    if not -LAT_OFFSET <= lat <= LAT_OFFSET:
        raise InvalidGeometryError(f"latitude out of range [-90, 90]: {lat}")
    if not -LON_OFFSET <= lon <= LON_OFFSET:
        raise InvalidGeometryError(f"longitude out of range [-180, 180]: {lon}")
    return lat, lon


def _check_cell_size(cell_size: float) -> None:
    if not (math.isfinite(cell_size) and cell_size > 0):
        raise InvalidGeometryError(f"cell size must be positive and finite, got {cell_size}")
    if 2 * LON_OFFSET / cell_size >= MAX_CELL_INDEX:
        raise InvalidGeometryError(f"cell size {cell_size} is too fine to index")


def encode_cell(position: LatLng, cell_size: float) -> CellKey:
    """Return the ``(row, col)`` of the cell holding ``position``."""
    _check_cell_size(cell_size)
    lat, lon = validate_position(position)
    row = math.floor((lat + LAT_OFFSET) / cell_size)
    col = math.floor((lon + LON_OFFSET) / cell_size)
    return (int(row), int(col))


def encode_cells(positions: Iterable[LatLng], cell_size: float) -> List[CellKey]:
    """Vectorized :func:`encode_cell` for many positions.

    Raises :class:`InvalidGeometryError` naming the first bad position.
    """
    _check_cell_size(cell_size)
    try:
        coords = np.asarray(list(positions), dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidGeometryError(f"positions must be numeric (lat, lon) pairs: {e}") from None
    if coords.size == 0:
        return []
    if coords.ndim != 2 or coords.shape[1] != 2:
        raise InvalidGeometryError(f"positions must be (lat, lon) pairs, got shape {coords.shape}")

    lat = coords[:, 0]
    lon = coords[:, 1]
    bad = ~np.isfinite(coords).all(axis=1)
    with np.errstate(invalid="ignore"):
        bad |= np.abs(lat) > LAT_OFFSET
        bad |= np.abs(lon) > LON_OFFSET
    if bad.any():
        idx = int(np.flatnonzero(bad)[0])
        # Re-validate the offending entry for a precise message
        validate_position(tuple(coords[idx]))
        raise InvalidGeometryError(f"invalid position at index {idx}: {tuple(coords[idx])}")

    rows = np.floor((lat + LAT_OFFSET) / cell_size).astype(np.int64)
    cols = np.floor((lon + LON_OFFSET) / cell_size).astype(np.int64)
    return list(zip(rows.tolist(), cols.tolist()))
