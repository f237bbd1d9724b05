"""
Capabilities the clustering core consumes from its host.

The core never owns markers or draws anything itself. The host map supplies
representative handles, the host overlay supplies markers, and a cluster
implementation decides how a group of markers is displayed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Optional, Protocol, Tuple

# (latitude, longitude) in degrees
LatLng = Tuple[float, float]

# (row, column) of a grid cell
CellKey = Tuple[int, int]

HUE_CYAN = 180.0


@dataclass(frozen=True)
class MarkerStyle:
    """Options used when asking the map for a new marker."""

    visible: bool = False
    hue: float = HUE_CYAN
    title: Optional[str] = None


class MarkerHandle(Protocol):
    def set_visible(self, visible: bool) -> None: ...

    def set_position(self, position: LatLng) -> None: ...

    def set_title(self, title: Optional[str]) -> None: ...

    def remove(self) -> None: ...


class MapProvider(Protocol):
    def add_marker(self, position: LatLng, style: MarkerStyle) -> MarkerHandle: ...

    def current_zoom(self) -> float: ...


class Marker(Protocol):
    """A host marker tracked (but not owned) by a strategy.

    ``desired_visible`` is what the caller asked for. ``force_display``
    changes what is actually drawn and bypasses cluster arbitration.
    """

    def position(self) -> LatLng: ...

    def desired_visible(self) -> bool: ...

    def force_display(self, visible: bool) -> None: ...


class Cluster(Protocol):
    def add_member(self, marker: Marker) -> None: ...

    def remove_member(self, marker: Marker) -> None: ...

    def member_count(self) -> int: ...

    def cell_id(self) -> Hashable: ...

    def refresh_display(self) -> None: ...

    def release(self) -> None: ...
