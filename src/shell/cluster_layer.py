"""Cluster Layer Manager - Imperative Shell.

This module owns the map's clustering source and its three layers, and keeps
them in sync with the working set. It is the only code that mutates the map.

Lifecycle (one manager per map instance):

    UNINSTALLED -> INSTALLING -> INSTALLED -> REINSTALLING -> INSTALLED -> TORN_DOWN

Installation waits for the map's style to be loaded and is idempotent:
existing resources are removed (layers before their source) before being
added again, and interaction handlers are unbound before being rebound.
A style swap discards every source and layer, so each style.load re-runs it.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from src.core.config import ClusterConfig
from src.core.event import Event
from src.core.features import build_feature_collection
from src.core.filters import FilterParameters, WorkingSet, filter_events
from src.core.styles import LayerIds, build_layers, build_source_spec
from src.shell.interaction import ClusterCallback, InteractionDispatcher, PointCallback
from src.shell.map_handle import STYLE_LOAD_EVENT, MapHandle


logger = logging.getLogger(__name__)


class LayerState(Enum):
    """Installation state of the cluster layers on the map."""
    UNINSTALLED = "uninstalled"
    INSTALLING = "installing"
    INSTALLED = "installed"
    REINSTALLING = "reinstalling"
    TORN_DOWN = "torn_down"


class ClusterLayerManager:
    """Keeps the map's cluster/point layers synchronized with the working set.

    Inbound: update_events(), update_filters(), attach_to_map(), detach().
    Outbound: on_cluster_activate(features), on_point_activate(properties).
    """

    def __init__(
        self,
        config: ClusterConfig | None = None,
        on_cluster_activate: ClusterCallback | None = None,
        on_point_activate: PointCallback | None = None,
        filters: FilterParameters | None = None,
        layer_ids: LayerIds | None = None,
    ) -> None:
        """Initialize manager.

        Args:
            config: Clustering settings
            on_cluster_activate: Callback for cluster clicks
            on_point_activate: Callback for point clicks
            filters: Initial filter parameters
            layer_ids: Source/layer ids (defaults to the earthquake-* ids)
        """
        self.config = config or ClusterConfig()
        self.on_cluster_activate = on_cluster_activate
        self.on_point_activate = on_point_activate
        self.layer_ids = layer_ids or LayerIds()

        self._events: tuple[Event, ...] = ()
        self._filters = filters or FilterParameters()
        self._working_set: WorkingSet = ()

        self._map: MapHandle | None = None
        self._dispatcher: InteractionDispatcher | None = None
        self._state = LayerState.UNINSTALLED

    @property
    def state(self) -> LayerState:
        return self._state

    @property
    def working_set(self) -> WorkingSet:
        """The most recently computed working set."""
        return self._working_set

    @property
    def filters(self) -> FilterParameters:
        return self._filters

    @property
    def attached(self) -> bool:
        return self._map is not None

    def feature_collection(self) -> dict[str, Any]:
        """GeoJSON for the current working set, as pushed to the map source."""
        return build_feature_collection(self._working_set)

    # ----- inbound interface -----

    def update_events(self, events: Iterable[Event], now: datetime | None = None) -> WorkingSet:
        """Replace the event sequence and resync the map.

        A refresh supersedes the previous sequence entirely.
        """
        self._events = tuple(events)
        return self._recompute(now)

    def update_filters(self, params: FilterParameters, now: datetime | None = None) -> WorkingSet:
        """Apply a new filter snapshot and resync the map."""
        self._filters = params
        return self._recompute(now)

    def attach_to_map(self, map_handle: MapHandle) -> None:
        """Take ownership of a map instance.

        Installs immediately if the style is already loaded; otherwise the
        style.load listener installs once it fires.
        """
        if self._map is map_handle:
            return
        if self._map is not None:
            self.detach()

        self._map = map_handle
        self._dispatcher = InteractionDispatcher(
            map_handle,
            layer_ids=self.layer_ids,
            config=self.config,
            on_cluster_activate=self._forward_cluster_activate,
            on_point_activate=self._forward_point_activate,
        )
        self._state = LayerState.UNINSTALLED

        map_handle.on_map(STYLE_LOAD_EVENT, self._on_style_load)

        if map_handle.is_style_loaded():
            self.install()
        else:
            logger.info("Map style not loaded yet, deferring cluster layer install")

    def detach(self) -> None:
        """Release the map.

        Synchronously unbinds every handler so no callback can fire against a
        disposed map. Sources and layers are left to the map's own teardown.
        """
        if self._map is None:
            return

        if self._dispatcher is not None:
            self._dispatcher.unbind()

        try:
            self._map.off_map(STYLE_LOAD_EVENT, self._on_style_load)
        except Exception as e:
            logger.warning("Failed to remove style listener: %s", e)

        self._map = None
        self._dispatcher = None
        self._state = LayerState.TORN_DOWN
        logger.info("Cluster layer manager detached")

    # ----- installation -----

    def install(self) -> bool:
        """Install (or reinstall) the source, layers and handlers.

        Safe to call repeatedly: leftovers from a previous install are removed
        first, so exactly one source, three layers and one set of handlers
        exist afterwards.

        Returns:
            True if installed, False if there is no map, its style is not
            loaded, or the map rejected a resource (nothing is left behind)
        """
        if self._map is None or self._dispatcher is None:
            return False

        if not self._map.is_style_loaded():
            logger.debug("Skipping install, map style not loaded")
            return False

        if self._state is LayerState.INSTALLED:
            self._state = LayerState.REINSTALLING
        elif self._state is not LayerState.REINSTALLING:
            self._state = LayerState.INSTALLING

        self._remove_resources()

        try:
            self._map.add_source(
                self.layer_ids.source,
                build_source_spec(
                    self.feature_collection(),
                    cluster_radius=self.config.cluster_radius,
                    cluster_max_zoom=self.config.cluster_max_zoom,
                ),
            )
            for layer in build_layers(self.layer_ids):
                self._map.add_layer(layer)

            self._dispatcher.bind()
        except Exception as e:
            # All four resources exist together or not at all
            logger.warning("Failed to install cluster layers: %s", e)
            self._dispatcher.unbind()
            self._remove_resources()
            self._state = LayerState.UNINSTALLED
            return False

        self._state = LayerState.INSTALLED

        logger.info(
            "Installed cluster layers with %d events",
            len(self._working_set),
            extra={"source_id": self.layer_ids.source},
        )
        return True

    def _remove_resources(self) -> None:
        """Remove layers, then the source they reference, each only if present."""
        for layer_id in self.layer_ids.layers:
            if self._map.get_layer(layer_id) is not None:
                try:
                    self._map.remove_layer(layer_id)
                except Exception as e:
                    logger.warning("Failed to remove layer %s: %s", layer_id, e)

        source_id = self.layer_ids.source
        if self._map.get_source(source_id) is not None:
            try:
                self._map.remove_source(source_id)
            except Exception as e:
                logger.warning("Failed to remove source %s: %s", source_id, e)

    def _on_style_load(self) -> None:
        """The map (re)loaded its style; every previously added layer is gone."""
        if self._state is LayerState.INSTALLED:
            logger.info("Map style changed, reinstalling cluster layers")
            self._state = LayerState.REINSTALLING
        self.install()

    # ----- data sync -----

    def _recompute(self, now: datetime | None) -> WorkingSet:
        self._working_set = filter_events(self._events, self._filters, now=now)
        self._push_data()
        return self._working_set

    def _push_data(self) -> None:
        """Update the source's data in place; layers and handlers are untouched.

        Before installation there is nothing to update; the install step
        picks up the latest working set.
        """
        if self._map is None or self._state is not LayerState.INSTALLED:
            return

        source = self._map.get_source(self.layer_ids.source)
        if source is None:
            logger.warning("Source %s missing, skipping data update", self.layer_ids.source)
            return

        try:
            source.set_data(self.feature_collection())
        except Exception as e:
            logger.warning("Failed to update source data: %s", e)
            return

        logger.debug("Updated source data with %d events", len(self._working_set))

    # ----- outbound callbacks -----

    def _forward_cluster_activate(self, features: list[dict[str, Any]]) -> None:
        if self.on_cluster_activate is not None:
            self.on_cluster_activate(features)

    def _forward_point_activate(self, properties: dict[str, Any]) -> None:
        if self.on_point_activate is not None:
            self.on_point_activate(properties)
