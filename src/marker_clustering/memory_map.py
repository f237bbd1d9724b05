"""In-memory map backend for running strategies without a real map view."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .interfaces import LatLng, MarkerStyle


@dataclass(eq=False)
class InMemoryMarkerHandle:
    position: LatLng
    visible: bool = False
    hue: Optional[float] = None
    title: Optional[str] = None
    removed: bool = field(default=False, init=False)

    def _check_alive(self) -> None:
        if self.removed:
            raise RuntimeError("marker handle used after remove()")

    def set_visible(self, visible: bool) -> None:
        self._check_alive()
        self.visible = visible

    def set_position(self, position: LatLng) -> None:
        self._check_alive()
        self.position = position

    def set_title(self, title: Optional[str]) -> None:
        self._check_alive()
        self.title = title

    def remove(self) -> None:
        self._check_alive()
        self.removed = True
        self.visible = False

    def is_removed(self) -> bool:
        return self.removed


class InMemoryMap:
    """Map provider that records the markers it hands out."""

    def __init__(self, zoom: float = 0.0):
        self._zoom = zoom
        self._handles: List[InMemoryMarkerHandle] = []

    def current_zoom(self) -> float:
        return self._zoom

    def set_zoom(self, zoom: float) -> None:
        """Change the zoom reported to strategies created afterwards."""
        self._zoom = zoom

    def add_marker(self, position: LatLng, style: MarkerStyle) -> InMemoryMarkerHandle:
        handle = InMemoryMarkerHandle(
            position=position, visible=style.visible, hue=style.hue, title=style.title
        )
        self._handles.append(handle)
        return handle

    @property
    def markers(self) -> List[InMemoryMarkerHandle]:
        """Handles that have not been removed."""
        return [h for h in self._handles if not h.removed]

    def visible_markers(self) -> List[InMemoryMarkerHandle]:
        return [h for h in self._handles if h.visible and not h.removed]


@dataclass(eq=False)
class SimpleMarker:
    """Host-side marker: a position, the requested visibility and what is drawn.

    Compared and hashed by identity, as strategies key on marker identity.
    """

    lat: float
    lon: float
    visible: bool = True
    displayed: bool = False
    name: Optional[str] = None

    def position(self) -> LatLng:
        return (self.lat, self.lon)

    def desired_visible(self) -> bool:
        return self.visible

    def force_display(self, visible: bool) -> None:
        self.displayed = visible

    def move_to(self, lat: float, lon: float) -> None:
        self.lat = lat
        self.lon = lon
