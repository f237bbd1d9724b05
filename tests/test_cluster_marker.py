import pytest

from marker_clustering.cluster_marker import ClusterMarker, mean_position
from marker_clustering.interfaces import MarkerStyle
from marker_clustering.memory_map import InMemoryMap, SimpleMarker


@pytest.fixture
def cluster():
    handle = InMemoryMap().add_marker((0.0, 0.0), MarkerStyle())
    return ClusterMarker((90, 180), handle)


def test_no_visible_members_hides_everything(cluster):
    a = SimpleMarker(0.0, 0.0, visible=False, displayed=True)
    b = SimpleMarker(0.5, 0.5, visible=False, displayed=True)
    cluster.add_member(a)
    cluster.add_member(b)
    cluster.handle.set_visible(True)

    cluster.refresh_display()

    assert not cluster.handle.visible
    assert not a.displayed and not b.displayed


def test_single_visible_member_shown_alone(cluster):
    a = SimpleMarker(0.0, 0.0, visible=True)
    b = SimpleMarker(0.5, 0.5, visible=False, displayed=True)
    cluster.add_member(a)
    cluster.add_member(b)

    cluster.refresh_display()

    assert a.displayed
    assert not b.displayed
    assert not cluster.handle.visible


def test_several_visible_members_use_representative(cluster):
    a = SimpleMarker(0.0, 0.0)
    b = SimpleMarker(0.5, 0.5)
    c = SimpleMarker(0.9, 0.9, visible=False)
    for m in (a, b, c):
        cluster.add_member(m)

    cluster.refresh_display()

    assert cluster.handle.visible
    # hidden members do not pull the representative towards them
    assert cluster.handle.position == (0.25, 0.25)
    assert cluster.handle.title == "2"
    assert not any(m.displayed for m in (a, b, c))


def test_members_keep_insertion_order(cluster):
    markers = [SimpleMarker(0.1 * i, 0.1 * i) for i in range(5)]
    for m in markers:
        cluster.add_member(m)
    cluster.remove_member(markers[2])
    assert cluster.members() == [markers[0], markers[1], markers[3], markers[4]]
    assert cluster.member_count() == 4


def test_remove_unknown_member(cluster):
    with pytest.raises(KeyError):
        cluster.remove_member(SimpleMarker(0.0, 0.0))


def test_release_removes_handle_once(cluster):
    cluster.release()
    assert cluster.handle.is_removed()
    cluster.release()


def test_mean_position():
    assert mean_position([(0.0, 0.0), (2.0, 4.0)]) == (1.0, 2.0)
    with pytest.raises(ValueError):
        mean_position([])
