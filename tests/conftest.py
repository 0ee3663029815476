"""Shared fixtures.

FakeMap is an in-memory stand-in for the map instance. It behaves like a
MapLibre map where it matters for the layer manager: adding a source or layer
twice raises, a layer cannot be added without its source, and a style swap
drops every source and layer before firing style.load.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone

import pytest

from src.core.event import Event, Position
from src.shell.map_handle import STYLE_LOAD_EVENT, PointerEvent


NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeSource:
    """GeoJSON source without cluster expansion support."""

    def __init__(self, spec):
        self.spec = spec
        self.data = spec.get("data")
        self.set_data_calls = 0

    def set_data(self, data):
        self.data = data
        self.set_data_calls += 1


class ExpandableSource(FakeSource):
    """GeoJSON source that can list cluster leaves and expansion zoom."""

    def __init__(self, spec, leaves=None, expansion_zoom=None):
        super().__init__(spec)
        self.leaves = leaves or []
        self.expansion_zoom = expansion_zoom
        self.leaf_requests = []

    def get_cluster_leaves(self, cluster_id, limit):
        self.leaf_requests.append((cluster_id, limit))
        return self.leaves[:limit]

    def get_cluster_expansion_zoom(self, cluster_id):
        if self.expansion_zoom is None:
            raise RuntimeError("expansion zoom unavailable")
        return self.expansion_zoom


class FakeMap:
    """In-memory map implementing the MapHandle protocol."""

    def __init__(
        self,
        style_loaded=True,
        zoom=3.0,
        cluster_leaves=None,
        expansion_zoom=None,
        rejected_layers=(),
    ):
        self.style_loaded = style_loaded
        self.zoom = zoom
        self.cluster_leaves = cluster_leaves
        self.expansion_zoom = expansion_zoom
        self.rejected_layers = set(rejected_layers)

        self.sources = {}
        self.layers = {}
        self.handlers = defaultdict(list)
        self.map_handlers = defaultdict(list)
        self.query_results = {}

        self.add_source_calls = 0
        self.add_layer_calls = 0
        self.camera_moves = []
        self.cursor = ""

    # ----- MapHandle -----

    def is_style_loaded(self):
        return self.style_loaded

    def on(self, event_type, layer_id, handler):
        self.handlers[(event_type, layer_id)].append(handler)

    def off(self, event_type, layer_id, handler):
        registered = self.handlers[(event_type, layer_id)]
        if handler in registered:
            registered.remove(handler)

    def on_map(self, event_type, handler):
        self.map_handlers[event_type].append(handler)

    def off_map(self, event_type, handler):
        registered = self.map_handlers[event_type]
        if handler in registered:
            registered.remove(handler)

    def get_source(self, source_id):
        return self.sources.get(source_id)

    def add_source(self, source_id, spec):
        if source_id in self.sources:
            raise ValueError(f"Source {source_id} already exists")
        if self.cluster_leaves is not None or self.expansion_zoom is not None:
            source = ExpandableSource(spec, self.cluster_leaves, self.expansion_zoom)
        else:
            source = FakeSource(spec)
        self.sources[source_id] = source
        self.add_source_calls += 1

    def remove_source(self, source_id):
        if any(layer["source"] == source_id for layer in self.layers.values()):
            raise ValueError(f"Source {source_id} is still used by a layer")
        del self.sources[source_id]

    def get_layer(self, layer_id):
        return self.layers.get(layer_id)

    def add_layer(self, spec):
        if spec["id"] in self.rejected_layers:
            raise ValueError("bad layer spec")
        if spec["id"] in self.layers:
            raise ValueError(f"Layer {spec['id']} already exists")
        if spec["source"] not in self.sources:
            raise ValueError(f"Source {spec['source']} does not exist")
        self.layers[spec["id"]] = spec
        self.add_layer_calls += 1

    def remove_layer(self, layer_id):
        del self.layers[layer_id]

    def query_rendered_features(self, point, layers):
        features = []
        for layer_id in layers:
            features.extend(self.query_results.get(layer_id, []))
        return features

    def ease_to(self, center, zoom):
        self.camera_moves.append((center, zoom))

    def get_zoom(self):
        return self.zoom

    def set_cursor(self, cursor):
        self.cursor = cursor

    # ----- test helpers -----

    def fire(self, event_type, layer_id, point=(10.0, 10.0)):
        """Deliver a pointer event to every handler scoped to the layer."""
        event = PointerEvent(point=point)
        for handler in list(self.handlers[(event_type, layer_id)]):
            handler(event)

    def set_style(self):
        """Swap the basemap style: all sources and layers are discarded."""
        self.sources.clear()
        self.layers.clear()
        self.style_loaded = True
        for handler in list(self.map_handlers[STYLE_LOAD_EVENT]):
            handler()

    def handler_count(self, event_type=None, layer_id=None):
        return sum(
            len(registered)
            for (event, layer), registered in self.handlers.items()
            if (event_type is None or event == event_type)
            and (layer_id is None or layer == layer_id)
        )


class PopupMap(FakeMap):
    """FakeMap that can show popups."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.popups = []

    def show_popup(self, lng_lat, title, description):
        self.popups.append((lng_lat, title, description))


@pytest.fixture
def now():
    """Fixed reference time for filter windows."""
    return NOW


@pytest.fixture
def make_event():
    """Factory for events relative to NOW."""
    def _make(
        event_id="us1",
        magnitude=3.0,
        minutes_ago=10,
        place="10km NE of Ridgecrest, CA",
        longitude=-117.6,
        latitude=35.7,
        depth_km=8.0,
    ):
        return Event(
            id=event_id,
            position=Position(longitude=longitude, latitude=latitude, depth_km=depth_km),
            magnitude=magnitude,
            time_occurred=NOW - timedelta(minutes=minutes_ago),
            place=place,
            detail_url=f"https://earthquake.usgs.gov/earthquakes/eventpage/{event_id}",
            title=f"M {magnitude:.1f} - {place}",
        )
    return _make


@pytest.fixture
def fake_map():
    """A map whose style is already loaded."""
    return FakeMap()


@pytest.fixture
def make_map():
    """Factory for maps with specific capabilities."""
    def _make(popups=False, **kwargs):
        if popups:
            return PopupMap(**kwargs)
        return FakeMap(**kwargs)
    return _make
