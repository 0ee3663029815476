"""Tests for the Cluster Layer Manager.

Runs the manager against the in-memory FakeMap, which rejects duplicate
sources and layers the way a real map does.
"""

import logging

import pytest

from src.core.config import ClusterConfig
from src.core.filters import FilterParameters
from src.core.styles import (
    CLUSTER_COUNT_LAYER_ID,
    CLUSTER_LAYER_ID,
    POINT_LAYER_ID,
    SOURCE_ID,
)
from src.shell.cluster_layer import ClusterLayerManager, LayerState
from src.shell.map_handle import CLICK_EVENT, STYLE_LOAD_EVENT


ALL_LAYERS = {CLUSTER_LAYER_ID, CLUSTER_COUNT_LAYER_ID, POINT_LAYER_ID}


def _feature_ids(fake_map):
    return [f["id"] for f in fake_map.sources[SOURCE_ID].data["features"]]


@pytest.fixture
def manager():
    return ClusterLayerManager()


class TestInstall:
    """Tests for installation on attach."""

    def test_installs_source_layers_and_handlers(self, manager, fake_map):
        manager.attach_to_map(fake_map)

        assert manager.state is LayerState.INSTALLED
        assert set(fake_map.sources) == {SOURCE_ID}
        assert set(fake_map.layers) == ALL_LAYERS
        assert fake_map.handler_count() == 6

    def test_source_is_clustered_with_config(self, fake_map):
        manager = ClusterLayerManager(config=ClusterConfig(cluster_radius=40, cluster_max_zoom=12))

        manager.attach_to_map(fake_map)

        spec = fake_map.sources[SOURCE_ID].spec
        assert spec["cluster"] is True
        assert spec["clusterRadius"] == 40
        assert spec["clusterMaxZoom"] == 12

    def test_install_is_idempotent(self, manager, fake_map):
        manager.attach_to_map(fake_map)

        for _ in range(5):
            assert manager.install() is True

        assert len(fake_map.sources) == 1
        assert len(fake_map.layers) == 3
        assert fake_map.handler_count() == 6
        assert fake_map.handler_count(CLICK_EVENT, CLUSTER_LAYER_ID) == 1
        assert fake_map.handler_count(CLICK_EVENT, POINT_LAYER_ID) == 1

    def test_install_removes_leftover_resources(self, manager, fake_map):
        """Layers from an earlier manager on the same map are replaced, not duplicated."""
        ClusterLayerManager().attach_to_map(fake_map)

        manager.attach_to_map(fake_map)

        assert manager.state is LayerState.INSTALLED
        assert set(fake_map.layers) == ALL_LAYERS

    def test_deferred_until_style_loads(self, manager, make_map):
        fake_map = make_map(style_loaded=False)

        manager.attach_to_map(fake_map)

        assert manager.state is LayerState.UNINSTALLED
        assert fake_map.sources == {}
        assert fake_map.handler_count() == 0

        fake_map.set_style()

        assert manager.state is LayerState.INSTALLED
        assert set(fake_map.layers) == ALL_LAYERS

    def test_install_without_map(self, manager):
        assert manager.install() is False
        assert manager.state is LayerState.UNINSTALLED

    def test_attach_same_map_twice_is_noop(self, manager, fake_map):
        manager.attach_to_map(fake_map)
        manager.attach_to_map(fake_map)

        assert fake_map.add_source_calls == 1
        assert len(fake_map.map_handlers[STYLE_LOAD_EVENT]) == 1


class TestStyleSwap:
    """Tests for reinstall after the basemap style changes."""

    def test_reinstalls_after_style_swap(self, manager, fake_map, make_event, now):
        manager.attach_to_map(fake_map)
        manager.update_events([make_event("a"), make_event("b")], now=now)

        fake_map.set_style()

        assert manager.state is LayerState.INSTALLED
        assert set(fake_map.layers) == ALL_LAYERS
        assert _feature_ids(fake_map) == ["a", "b"]
        assert fake_map.handler_count() == 6

    def test_handler_count_constant_across_swaps_and_updates(
        self, manager, fake_map, make_event, now
    ):
        manager.attach_to_map(fake_map)

        for i in range(4):
            fake_map.set_style()
            for j in range(3):
                manager.update_events([make_event(f"e{i}{j}")], now=now)
                manager.update_filters(FilterParameters(min_magnitude=j), now=now)

        assert fake_map.handler_count() == 6
        assert len(fake_map.layers) == 3


class TestDataSync:
    """Tests for pushing the working set into the source."""

    def test_update_uses_set_data_only(self, manager, fake_map, make_event, now):
        manager.attach_to_map(fake_map)
        source = fake_map.sources[SOURCE_ID]

        manager.update_events([make_event("a", magnitude=1.0), make_event("b", magnitude=4.0)], now=now)

        assert fake_map.sources[SOURCE_ID] is source
        assert source.set_data_calls == 1
        assert fake_map.add_source_calls == 1
        assert fake_map.add_layer_calls == 3
        assert _feature_ids(fake_map) == ["b", "a"]

    def test_filter_change_updates_source(self, manager, fake_map, make_event, now):
        manager.attach_to_map(fake_map)
        manager.update_events([make_event("a", magnitude=1.2), make_event("b", magnitude=3.4)], now=now)

        working_set = manager.update_filters(FilterParameters(min_magnitude=2.5), now=now)

        assert [e.id for e in working_set] == ["b"]
        assert _feature_ids(fake_map) == ["b"]

    def test_last_update_wins(self, manager, fake_map, make_event, now):
        manager.attach_to_map(fake_map)

        manager.update_events([make_event("first")], now=now)
        manager.update_events([make_event("second")], now=now)

        assert _feature_ids(fake_map) == ["second"]

    def test_update_before_install_is_applied_on_install(self, manager, make_map, make_event, now):
        fake_map = make_map(style_loaded=False)
        manager.attach_to_map(fake_map)

        manager.update_events([make_event("early")], now=now)
        fake_map.set_style()

        assert _feature_ids(fake_map) == ["early"]

    def test_update_without_map_computes_working_set(self, manager, make_event, now):
        working_set = manager.update_events([make_event("a")], now=now)

        assert [e.id for e in working_set] == ["a"]
        assert manager.working_set == working_set

    def test_missing_source_is_logged(self, manager, fake_map, make_event, now, caplog):
        manager.attach_to_map(fake_map)
        fake_map.layers.clear()
        fake_map.sources.clear()

        with caplog.at_level(logging.WARNING):
            manager.update_events([make_event()], now=now)

        assert "missing" in caplog.text


class TestDetach:
    """Tests for teardown."""

    def test_detach_unbinds_handlers(self, manager, fake_map):
        manager.attach_to_map(fake_map)

        manager.detach()

        assert manager.state is LayerState.TORN_DOWN
        assert fake_map.handler_count() == 0
        assert fake_map.map_handlers[STYLE_LOAD_EVENT] == []

    def test_detach_twice_is_safe(self, manager, fake_map):
        manager.attach_to_map(fake_map)

        manager.detach()
        manager.detach()

        assert manager.attached is False

    def test_detach_tolerates_failing_off(self, manager, fake_map):
        manager.attach_to_map(fake_map)

        def broken_off(*args):
            raise RuntimeError("map disposed")

        fake_map.off = broken_off
        fake_map.off_map = broken_off

        manager.detach()

        assert manager.state is LayerState.TORN_DOWN

    def test_updates_after_detach_do_not_touch_map(self, manager, fake_map, make_event, now):
        manager.attach_to_map(fake_map)
        source = fake_map.sources[SOURCE_ID]
        manager.detach()

        manager.update_events([make_event()], now=now)

        assert source.set_data_calls == 0

    def test_attach_to_new_map_releases_old(self, manager, make_map):
        old_map = make_map()
        new_map = make_map()

        manager.attach_to_map(old_map)
        manager.attach_to_map(new_map)

        assert old_map.handler_count() == 0
        assert new_map.handler_count() == 6
        assert manager.state is LayerState.INSTALLED


class TestCallbacks:
    """Tests for outbound callbacks through the manager."""

    def test_point_click_reaches_callback(self, fake_map, make_event, now):
        received = []
        manager = ClusterLayerManager(on_point_activate=received.append)
        manager.attach_to_map(fake_map)
        manager.update_events([make_event("us1")], now=now)
        fake_map.query_results[POINT_LAYER_ID] = fake_map.sources[SOURCE_ID].data["features"]

        fake_map.fire(CLICK_EVENT, POINT_LAYER_ID)

        assert len(received) == 1
        assert received[0]["id"] == "us1"


class TestFailedInstall:
    """Tests for an install the map rejects partway through."""

    def test_failure_leaves_nothing_behind(self, manager, make_map):
        fake_map = make_map(rejected_layers={POINT_LAYER_ID})

        manager.attach_to_map(fake_map)

        assert manager.state is LayerState.UNINSTALLED
        assert fake_map.sources == {}
        assert fake_map.layers == {}
        assert fake_map.handler_count() == 0

    def test_failure_during_style_load_does_not_raise(self, manager, make_map, caplog):
        fake_map = make_map(style_loaded=False, rejected_layers={POINT_LAYER_ID})
        manager.attach_to_map(fake_map)

        with caplog.at_level(logging.WARNING):
            fake_map.set_style()

        assert manager.state is LayerState.UNINSTALLED
        assert fake_map.sources == {}
        assert "Failed to install" in caplog.text

    def test_install_returns_false(self, manager, make_map):
        fake_map = make_map(rejected_layers={POINT_LAYER_ID})
        manager.attach_to_map(fake_map)

        assert manager.install() is False

    def test_next_style_load_recovers(self, manager, make_map, make_event, now):
        fake_map = make_map(rejected_layers={POINT_LAYER_ID})
        manager.attach_to_map(fake_map)
        manager.update_events([make_event("a")], now=now)

        fake_map.rejected_layers.clear()
        fake_map.set_style()
        manager.update_events([make_event("a"), make_event("b")], now=now)

        assert manager.state is LayerState.INSTALLED
        assert set(fake_map.layers) == ALL_LAYERS
        assert fake_map.handler_count() == 6
        assert _feature_ids(fake_map) == ["a", "b"]


CLUSTER_FEATURE = {
    "type": "Feature",
    "properties": {"cluster": True, "cluster_id": 1, "point_count": 4},
    "geometry": {"type": "Point", "coordinates": [-117.5, 35.6]},
}


class TestCallbackCountAfterReinstall:
    """Repeated installs never multiply the callbacks a gesture produces."""

    def _reinstall_many_times(self, manager, fake_map):
        manager.attach_to_map(fake_map)
        for _ in range(5):
            manager.install()
        for _ in range(3):
            fake_map.set_style()

    def test_point_clicks(self, fake_map, make_event, now):
        received = []
        manager = ClusterLayerManager(on_point_activate=received.append)
        self._reinstall_many_times(manager, fake_map)
        manager.update_events([make_event("us1")], now=now)
        fake_map.query_results[POINT_LAYER_ID] = fake_map.sources[SOURCE_ID].data["features"]

        for _ in range(3):
            fake_map.fire(CLICK_EVENT, POINT_LAYER_ID)

        assert len(received) == 3

    def test_cluster_clicks(self, fake_map):
        received = []
        manager = ClusterLayerManager(on_cluster_activate=received.append)
        self._reinstall_many_times(manager, fake_map)
        fake_map.query_results[CLUSTER_LAYER_ID] = [CLUSTER_FEATURE]

        for _ in range(4):
            fake_map.fire(CLICK_EVENT, CLUSTER_LAYER_ID)

        assert len(received) == 4
        assert len(fake_map.camera_moves) == 4
