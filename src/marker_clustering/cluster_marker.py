from __future__ import annotations

import logging
from typing import Dict, List

from .interfaces import CellKey, LatLng, Marker, MarkerHandle

logger = logging.getLogger(__name__)


def mean_position(positions: List[LatLng]) -> LatLng:
    """Return the arithmetic mean of ``positions``."""
    if not positions:
        raise ValueError("mean_position requires at least one position")
    lat = sum(p[0] for p in positions) / len(positions)
    lon = sum(p[1] for p in positions) / len(positions)
    return (lat, lon)


class ClusterMarker:
    """Markers sharing one grid cell, shown through a single map marker.

    Display policy applied by :meth:`refresh_display`, based on the members
    whose ``desired_visible()`` is true:

    * none: the representative and every member are hidden
    * exactly one: that member is shown on its own, the representative hidden
    * two or more: members are hidden and the representative is shown at
      their mean position, titled with how many it stands for
    """

    def __init__(self, cell_id: CellKey, handle: MarkerHandle):
        self._cell_id = cell_id
        self._handle = handle
        # dict keeps insertion order and gives O(1) removal
        self._members: Dict[Marker, None] = {}
        self._released = False

    def __repr__(self) -> str:
        return f"ClusterMarker(cell_id={self._cell_id!r}, members={len(self._members)})"

    @property
    def handle(self) -> MarkerHandle:
        return self._handle

    def cell_id(self) -> CellKey:
        return self._cell_id

    def add_member(self, marker: Marker) -> None:
        self._members[marker] = None

    def remove_member(self, marker: Marker) -> None:
        try:
            del self._members[marker]
        except KeyError:
            raise KeyError(f"{marker!r} is not a member of cluster {self._cell_id}") from None

    def member_count(self) -> int:
        return len(self._members)

    def members(self) -> List[Marker]:
        return list(self._members)

    def refresh_display(self) -> None:
        visible = [m for m in self._members if m.desired_visible()]
        if not visible:
            self._handle.set_visible(False)
            for m in self._members:
                m.force_display(False)
            return

        if len(visible) == 1:
            self._handle.set_visible(False)
            only = visible[0]
            for m in self._members:
                m.force_display(m is only)
            return

        for m in self._members:
            m.force_display(False)
        self._handle.set_position(mean_position([m.position() for m in visible]))
        self._handle.set_title(str(len(visible)))
        self._handle.set_visible(True)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._handle.remove()
        logger.debug("Released representative marker for cell %s", self._cell_id)
