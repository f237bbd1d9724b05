import pytest

from marker_clustering.config import ClusteringSettings
from marker_clustering.memory_map import InMemoryMap, SimpleMarker
from marker_clustering.strategy import (
    GridClusteringStrategy,
    NoClusteringStrategy,
    NotTrackedError,
    create_strategy,
    list_strategies,
)


def test_list_strategies():
    assert list_strategies() == ["grid", "none"]


def test_create_default_strategy_is_grid():
    strategy = create_strategy(InMemoryMap(zoom=5.0))
    assert isinstance(strategy, GridClusteringStrategy)


def test_create_none_strategy():
    provider = InMemoryMap(zoom=5.0)
    assert isinstance(create_strategy(provider, [], ClusteringSettings(strategy="none")), NoClusteringStrategy)
    assert isinstance(create_strategy(provider, [], ClusteringSettings(enabled=False)), NoClusteringStrategy)


def test_unknown_strategy_name():
    with pytest.raises(ValueError):
        ClusteringSettings(strategy="distance")


def test_no_clustering_passes_visibility_through():
    a = SimpleMarker(0.0, 0.0)
    b = SimpleMarker(0.0, 0.0, visible=False)
    provider = InMemoryMap(zoom=1.0)
    strategy = NoClusteringStrategy(provider, [a])
    assert a.displayed

    strategy.on_add(b)
    assert not b.displayed
    strategy.on_visibility_request(b, True)
    assert b.displayed
    strategy.on_zoom_change(3.0)
    strategy.on_position_change(a)
    assert provider.markers == []

    strategy.on_remove(b)
    assert strategy.tracked_markers == [a]
    with pytest.raises(NotTrackedError):
        strategy.on_remove(b)
    with pytest.raises(ValueError):
        strategy.on_add(a)


def test_no_clustering_teardown_shows_desired_markers():
    a = SimpleMarker(0.0, 0.0)
    strategy = NoClusteringStrategy(None, [a])
    a.force_display(False)
    strategy.teardown()
    assert a.displayed
