"""Interaction Dispatcher - Imperative Shell.

This module subscribes pointer handlers on the map, scoped to the cluster and
point layers, and turns raw gestures into one normalized callback each:
on_cluster_activate(features) or on_point_activate(properties).

Hit classification and camera math live in src.core.interaction.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from src.core.config import ClusterConfig
from src.core.interaction import (
    HitKind,
    classify_hit,
    cluster_camera_target,
    feature_coordinates,
    is_cluster_feature,
)
from src.core.styles import LayerIds
from src.shell.map_handle import (
    CLICK_EVENT,
    DEFAULT_CURSOR,
    MOUSE_ENTER_EVENT,
    MOUSE_LEAVE_EVENT,
    POINTER_CURSOR,
    Handler,
    MapHandle,
    PointerEvent,
    supports_expansion_zoom,
    supports_leaf_expansion,
    supports_popups,
)


logger = logging.getLogger(__name__)


ClusterCallback = Callable[[list[dict[str, Any]]], None]
PointCallback = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class HandlerBinding:
    """One handler registered on the map.

    Attributes:
        event_type: Map event name (click, mouseenter, mouseleave)
        layer_id: Layer the handler is scoped to
        handler: The exact callable passed to map.on(), needed for map.off()
    """
    event_type: str
    layer_id: str
    handler: Handler


class InteractionDispatcher:
    """Binds and unbinds the pointer handlers for the cluster/point layers.

    Every bind() first unbinds the previous generation of handlers, then
    registers freshly created closures, so a live map never carries more than
    one handler per (event, layer) pair no matter how often it is rebound.
    """

    def __init__(
        self,
        map_handle: MapHandle,
        layer_ids: LayerIds | None = None,
        config: ClusterConfig | None = None,
        on_cluster_activate: ClusterCallback | None = None,
        on_point_activate: PointCallback | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            map_handle: Map to subscribe on
            layer_ids: Ids of the cluster and point layers
            config: Cluster activation settings (zoom step, cap, leaf limit)
            on_cluster_activate: Receives the features of an activated cluster
            on_point_activate: Receives the properties of an activated point
        """
        self.map = map_handle
        self.layer_ids = layer_ids or LayerIds()
        self.config = config or ClusterConfig()
        self.on_cluster_activate = on_cluster_activate
        self.on_point_activate = on_point_activate
        self._bindings: list[HandlerBinding] = []

    @property
    def bound(self) -> bool:
        """True while handlers are registered on the map."""
        return bool(self._bindings)

    @property
    def bindings(self) -> tuple[HandlerBinding, ...]:
        return tuple(self._bindings)

    def bind(self) -> None:
        """(Re)subscribe all six handlers with fresh closures."""
        self.unbind()

        clusters = self.layer_ids.clusters
        points = self.layer_ids.points

        def cluster_click(event: PointerEvent) -> None:
            self.handle_cluster_click(event)

        def point_click(event: PointerEvent) -> None:
            self.handle_point_click(event)

        def pointer_enter(event: PointerEvent) -> None:
            self.map.set_cursor(POINTER_CURSOR)

        def pointer_leave(event: PointerEvent) -> None:
            self.map.set_cursor(DEFAULT_CURSOR)

        bindings = [
            HandlerBinding(CLICK_EVENT, clusters, cluster_click),
            HandlerBinding(CLICK_EVENT, points, point_click),
            HandlerBinding(MOUSE_ENTER_EVENT, clusters, pointer_enter),
            HandlerBinding(MOUSE_LEAVE_EVENT, clusters, pointer_leave),
            HandlerBinding(MOUSE_ENTER_EVENT, points, pointer_enter),
            HandlerBinding(MOUSE_LEAVE_EVENT, points, pointer_leave),
        ]

        for binding in bindings:
            self.map.on(binding.event_type, binding.layer_id, binding.handler)
            self._bindings.append(binding)

        logger.debug("Bound %d interaction handlers", len(self._bindings))

    def unbind(self) -> None:
        """Remove every registered handler.

        Best effort: the map may already have dropped the layers (style swap
        or map disposal), so failures are logged and skipped.
        """
        for binding in self._bindings:
            try:
                self.map.off(binding.event_type, binding.layer_id, binding.handler)
            except Exception as e:
                logger.warning(
                    "Failed to remove %s handler on %s: %s",
                    binding.event_type,
                    binding.layer_id,
                    e,
                )
        self._bindings = []

    def _query(self, event: PointerEvent) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Query rendered cluster and point features under the pointer."""
        clusters = self.map.query_rendered_features(
            event.point, layers=[self.layer_ids.clusters]
        )
        points = self.map.query_rendered_features(
            event.point, layers=[self.layer_ids.points]
        )
        return clusters, points

    def handle_cluster_click(self, event: PointerEvent) -> None:
        """Zoom toward the clicked cluster and report its features."""
        clusters, points = self._query(event)
        if classify_hit(clusters, points) is not HitKind.CLUSTER:
            return

        feature = next(f for f in clusters if is_cluster_feature(f))
        cluster_id = (feature.get("properties") or {}).get("cluster_id")
        source = self.map.get_source(self.layer_ids.source)

        expansion_zoom = None
        leaves = None
        if source is not None and cluster_id is not None:
            if supports_expansion_zoom(source):
                expansion_zoom = self._expansion_zoom(source, cluster_id)
            if supports_leaf_expansion(source):
                leaves = self._cluster_leaves(source, cluster_id)
            else:
                logger.warning(
                    "Cluster leaf expansion not supported by source %s, "
                    "zooming toward cluster instead",
                    self.layer_ids.source,
                )

        target = cluster_camera_target(
            feature,
            current_zoom=self.map.get_zoom(),
            expansion_zoom=expansion_zoom,
            zoom_increment=self.config.zoom_increment,
            max_zoom=self.config.max_activate_zoom,
        )
        if target is not None:
            self.map.ease_to(target.center, target.zoom)

        self._emit(self.on_cluster_activate, leaves if leaves is not None else clusters)

    def handle_point_click(self, event: PointerEvent) -> None:
        """Report the clicked point and show its popup."""
        clusters, points = self._query(event)
        # A cluster drawn over the point owns the gesture
        if classify_hit(clusters, points) is not HitKind.POINT:
            return

        feature = points[0]
        properties = dict(feature.get("properties") or {})

        self._emit(self.on_point_activate, properties)

        coordinates = feature_coordinates(feature)
        if coordinates is not None and supports_popups(self.map):
            self.map.show_popup(
                coordinates,
                properties.get("title") or "Earthquake",
                properties.get("description") or "",
            )

    def _expansion_zoom(self, source: Any, cluster_id: Any) -> float | None:
        try:
            return float(source.get_cluster_expansion_zoom(cluster_id))
        except Exception as e:
            logger.warning("Failed to get expansion zoom for cluster %s: %s", cluster_id, e)
            return None

    def _cluster_leaves(self, source: Any, cluster_id: Any) -> list[dict[str, Any]] | None:
        try:
            return list(source.get_cluster_leaves(cluster_id, self.config.leaf_limit))
        except Exception as e:
            logger.warning("Failed to expand cluster %s: %s", cluster_id, e)
            return None

    def _emit(self, callback: Callable[[Any], None] | None, payload: Any) -> None:
        """Invoke a consumer callback without letting it break the map's event loop."""
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:
            logger.exception("Interaction callback failed")
