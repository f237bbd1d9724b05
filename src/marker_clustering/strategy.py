"""
Clustering strategies driven by a map overlay.

The overlay owns the markers and forwards every change to its strategy. The
grid strategy keeps three structures in step:

* the cluster registry, cell key -> cluster
* the membership index, marker -> cell key (``None`` while disabled)
* each cluster's own member set

Clusters only come into existence through ``_find_or_create`` and only leave
through ``_destroy_if_empty`` or a bulk destroy, so an empty cluster never
survives the end of a public call.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .config import ClusteringSettings
from .grid import (
    Disabled,
    GridState,
    encode_cell,
    encode_cells,
    grid_state_for_zoom,
    validate_position,
)
from .interfaces import CellKey, Cluster, LatLng, MapProvider, Marker, MarkerStyle

logger = logging.getLogger(__name__)


class NotTrackedError(KeyError):
    """A marker was passed to a strategy that never saw it added."""


class ClusteringStateError(RuntimeError):
    """Registry, membership index and cluster members disagree."""


class ClusteringStrategy(ABC):
    """Callbacks a map overlay invokes on its clustering strategy."""

    @abstractmethod
    def teardown(self) -> None: ...

    @abstractmethod
    def on_zoom_change(self, zoom: float) -> None: ...

    @abstractmethod
    def on_add(self, marker: Marker) -> None: ...

    @abstractmethod
    def on_remove(self, marker: Marker) -> None: ...

    @abstractmethod
    def on_position_change(self, marker: Marker) -> None: ...

    @abstractmethod
    def on_visibility_request(self, marker: Marker, visible: bool) -> None: ...


class NoClusteringStrategy(ClusteringStrategy):
    """Every marker is displayed on its own, exactly as requested."""

    def __init__(
        self,
        provider: Optional[MapProvider] = None,
        markers: Iterable[Marker] = (),
        settings: Optional[ClusteringSettings] = None,
    ):
        self._markers: Dict[Marker, None] = dict.fromkeys(markers)
        for m in self._markers:
            m.force_display(m.desired_visible())

    @property
    def tracked_markers(self) -> List[Marker]:
        return list(self._markers)

    def _require_tracked(self, marker: Marker) -> None:
        if marker not in self._markers:
            raise NotTrackedError(marker)

    def teardown(self) -> None:
        for m in self._markers:
            if m.desired_visible():
                m.force_display(True)

    def on_zoom_change(self, zoom: float) -> None:
        pass

    def on_add(self, marker: Marker) -> None:
        if marker in self._markers:
            raise ValueError(f"{marker!r} is already tracked")
        self._markers[marker] = None
        marker.force_display(marker.desired_visible())

    def on_remove(self, marker: Marker) -> None:
        self._require_tracked(marker)
        del self._markers[marker]

    def on_position_change(self, marker: Marker) -> None:
        self._require_tracked(marker)

    def on_visibility_request(self, marker: Marker, visible: bool) -> None:
        self._require_tracked(marker)
        marker.force_display(visible)


class GridClusteringStrategy(ClusteringStrategy):
    """Merge markers that fall into the same square grid cell.

    Parameters
    ----------
    provider:
        Map used to create representative markers. Its ``current_zoom()`` is
        read once here; later zoom changes arrive via :meth:`on_zoom_change`.
    markers:
        Markers already on the map when clustering is switched on.
    settings:
        Cell-size parameters and the cluster factory.
    """

    def __init__(
        self,
        provider: MapProvider,
        markers: Iterable[Marker] = (),
        settings: Optional[ClusteringSettings] = None,
    ):
        self._provider = provider
        self._settings = settings or ClusteringSettings()
        self._markers: Dict[Marker, Optional[CellKey]] = dict.fromkeys(markers)
        self._clusters: Dict[CellKey, Cluster] = {}
        self._torn_down = False

        state = grid_state_for_zoom(provider.current_zoom(), self._settings)
        keys = self._encode_all(state)
        self._state: GridState = state
        self._rebuild(keys)

    # ------------------------------------------------------------------
    # introspection

    @property
    def state(self) -> GridState:
        return self._state

    @property
    def cell_size(self) -> float:
        return self._state.cell_size

    @property
    def clusters(self) -> Mapping[CellKey, Cluster]:
        return MappingProxyType(self._clusters)

    @property
    def tracked_markers(self) -> List[Marker]:
        return list(self._markers)

    def cluster_for(self, marker: Marker) -> Optional[Cluster]:
        """Return the cluster holding ``marker``, ``None`` while disabled."""
        key = self._lookup(marker)
        return None if key is None else self._clusters[key]

    def check_consistency(self) -> None:
        """Raise :class:`ClusteringStateError` if the bookkeeping is broken."""
        if isinstance(self._state, Disabled):
            if self._clusters:
                raise ClusteringStateError(
                    f"{len(self._clusters)} clusters exist while clustering is disabled"
                )
            stray = [m for m, key in self._markers.items() if key is not None]
            if stray:
                raise ClusteringStateError(f"{len(stray)} markers keep a cell while disabled")
            return

        counts: Counter = Counter()
        for marker, key in self._markers.items():
            if key is None:
                raise ClusteringStateError(f"{marker!r} has no cluster")
            if key not in self._clusters:
                raise ClusteringStateError(f"{marker!r} points at missing cell {key}")
            counts[key] += 1

        for key, cluster in self._clusters.items():
            if cluster.cell_id() != key:
                raise ClusteringStateError(
                    f"cluster registered under {key} reports cell {cluster.cell_id()}"
                )
            if cluster.member_count() == 0:
                raise ClusteringStateError(f"empty cluster left at cell {key}")
            if cluster.member_count() != counts[key]:
                raise ClusteringStateError(
                    f"cluster at {key} has {cluster.member_count()} members, "
                    f"index records {counts[key]}"
                )
            members = getattr(cluster, "members", None)
            if members is not None:
                for m in members():
                    if self._markers.get(m, None) != key:
                        raise ClusteringStateError(f"{m!r} in cluster {key} is indexed elsewhere")

    # ------------------------------------------------------------------
    # cluster registry

    def _find_or_create(self, cell_key: CellKey, position: LatLng) -> Cluster:
        cluster = self._clusters.get(cell_key)
        if cluster is None:
            handle = self._provider.add_marker(
                position, MarkerStyle(visible=False, hue=self._settings.cluster_hue)
            )
            cluster = self._settings.cluster_factory(cell_key, handle)
            self._clusters[cell_key] = cluster
            logger.debug("Created cluster for cell %s", cell_key)
        return cluster

    def _destroy_if_empty(self, cluster: Cluster) -> bool:
        if cluster.member_count() != 0:
            return False
        cluster.release()
        del self._clusters[cluster.cell_id()]
        logger.debug("Destroyed empty cluster for cell %s", cluster.cell_id())
        return True

    def _destroy_all(self) -> None:
        for cluster in self._clusters.values():
            cluster.release()
        if self._clusters:
            logger.debug("Destroyed %d clusters", len(self._clusters))
        self._clusters.clear()
        for m in self._markers:
            self._markers[m] = None

    def _detach(self, marker: Marker, cluster: Cluster) -> None:
        cluster.remove_member(marker)
        if not self._destroy_if_empty(cluster):
            cluster.refresh_display()

    # ------------------------------------------------------------------
    # membership index

    def _lookup(self, marker: Marker) -> Optional[CellKey]:
        try:
            return self._markers[marker]
        except KeyError:
            raise NotTrackedError(marker) from None

    def _encode_all(self, state: GridState) -> Optional[List[CellKey]]:
        if isinstance(state, Disabled):
            return None
        return encode_cells([m.position() for m in self._markers], state.cell_size)

    # ------------------------------------------------------------------
    # strategy callbacks

    def teardown(self) -> None:
        if self._torn_down:
            logger.warning("teardown called on a strategy that was already torn down")
        self._destroy_all()
        self._state = Disabled()
        for m in self._markers:
            if m.desired_visible():
                m.force_display(True)
        self._torn_down = True
        logger.info("Grid clustering torn down; %d markers shown individually", len(self._markers))

    def on_zoom_change(self, zoom: float) -> None:
        state = grid_state_for_zoom(zoom, self._settings)
        if state == self._state:
            return
        keys = self._encode_all(state)
        logger.info(
            "Cell size changed from %s to %s at zoom %s",
            self._state.cell_size,
            state.cell_size,
            zoom,
        )
        self._state = state
        self._rebuild(keys)

    def on_add(self, marker: Marker) -> None:
        if marker in self._markers:
            raise ValueError(f"{marker!r} is already tracked")
        position = validate_position(marker.position())
        state = self._state
        if isinstance(state, Disabled):
            self._markers[marker] = None
            marker.force_display(marker.desired_visible())
            return

        key = encode_cell(position, state.cell_size)
        cluster = self._find_or_create(key, position)
        cluster.add_member(marker)
        self._markers[marker] = key
        if marker.desired_visible():
            cluster.refresh_display()
        logger.debug("Added %r to cell %s", marker, key)

    def on_remove(self, marker: Marker) -> None:
        key = self._lookup(marker)
        del self._markers[marker]
        if isinstance(self._state, Disabled) or key is None:
            return
        self._detach(marker, self._clusters[key])
        logger.debug("Removed %r from cell %s", marker, key)

    def on_position_change(self, marker: Marker) -> None:
        key = self._lookup(marker)
        position = validate_position(marker.position())
        state = self._state
        if isinstance(state, Disabled):
            return

        if key is None:
            raise ClusteringStateError(f"{marker!r} has no cluster while clustering is active")
        new_key = encode_cell(position, state.cell_size)
        cluster = self._clusters[key]
        if new_key == key:
            if marker.desired_visible():
                cluster.refresh_display()
            return

        # Create the new cluster first so a failing map leaves the old one intact
        new_cluster = self._find_or_create(new_key, position)
        self._detach(marker, cluster)
        new_cluster.add_member(marker)
        self._markers[marker] = new_key
        if marker.desired_visible():
            new_cluster.refresh_display()
        logger.debug("Moved %r from cell %s to %s", marker, key, new_key)

    def on_visibility_request(self, marker: Marker, visible: bool) -> None:
        key = self._lookup(marker)
        if isinstance(self._state, Disabled):
            marker.force_display(visible)
            return
        if key is None:
            raise ClusteringStateError(f"{marker!r} has no cluster while clustering is active")
        # The cluster arbitrates from every member's desired visibility;
        # ``visible`` is never applied to the marker directly here.
        self._clusters[key].refresh_display()

    # ------------------------------------------------------------------
    # full rebuild

    def _rebuild(self, keys: Optional[List[CellKey]]) -> None:
        """Destroy every cluster, then repopulate for the current state.

        ``keys`` are the cells of ``self._markers`` in iteration order, or
        ``None`` when disabled. All markers are placed before any cluster is
        refreshed.
        """
        self._destroy_all()

        if keys is None:
            for m in self._markers:
                m.force_display(m.desired_visible())
            logger.info("Clustering disabled for %d markers", len(self._markers))
            return

        self._torn_down = False
        for marker, key in zip(list(self._markers), keys):
            cluster = self._find_or_create(key, marker.position())
            cluster.add_member(marker)
            self._markers[marker] = key

        for cluster in self._clusters.values():
            cluster.refresh_display()
        logger.info(
            "Placed %d markers into %d clusters (cell size %s)",
            len(self._markers),
            len(self._clusters),
            self._state.cell_size,
        )


STRATEGIES = {
    "grid": GridClusteringStrategy,
    "none": NoClusteringStrategy,
}


def create_strategy(
    provider: MapProvider,
    markers: Iterable[Marker] = (),
    settings: Optional[ClusteringSettings] = None,
) -> ClusteringStrategy:
    """Build the strategy selected by ``settings``."""
    settings = settings or ClusteringSettings()
    name = settings.strategy if settings.enabled else "none"
    if name not in STRATEGIES:
        raise ValueError(f"Unknown clustering strategy: {name}. Available: {list(STRATEGIES)}")
    return STRATEGIES[name](provider, markers, settings)


def list_strategies() -> List[str]:
    return list(STRATEGIES)
