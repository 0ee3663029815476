"""Map Handle Contract - Imperative Shell.

This module describes the external, stateful map instance the cluster layer
manager drives (a MapLibre-style map exposed to Python through a widget or
bridge). Only the calls the manager and dispatcher make are listed.

Optional operations (cluster leaf expansion, expansion zoom, popups) vary by
map engine version; callers check for them with the supports_* helpers and
use a defined fallback instead of calling blindly.
"""

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence


# Map-level event fired whenever a style finishes loading, including after
# a basemap style swap (which discards every added source and layer)
STYLE_LOAD_EVENT = "style.load"

CLICK_EVENT = "click"
MOUSE_ENTER_EVENT = "mouseenter"
MOUSE_LEAVE_EVENT = "mouseleave"

POINTER_CURSOR = "pointer"
DEFAULT_CURSOR = ""


@dataclass(frozen=True)
class PointerEvent:
    """A pointer gesture delivered by the map.

    Attributes:
        point: Screen position in pixels (x, y)
        lng_lat: Geographic position under the pointer (longitude, latitude)
    """
    point: tuple[float, float]
    lng_lat: tuple[float, float] | None = None


Handler = Callable[[PointerEvent], None]
StyleHandler = Callable[[], None]


class GeoJSONSource(Protocol):
    """A GeoJSON source registered on the map."""

    def set_data(self, data: dict[str, Any]) -> None:
        ...


class MapHandle(Protocol):
    """The map instance owned by the cluster layer manager."""

    def is_style_loaded(self) -> bool:
        ...

    def on(self, event_type: str, layer_id: str, handler: Handler) -> None:
        ...

    def off(self, event_type: str, layer_id: str, handler: Handler) -> None:
        ...

    def on_map(self, event_type: str, handler: StyleHandler) -> None:
        ...

    def off_map(self, event_type: str, handler: StyleHandler) -> None:
        ...

    def get_source(self, source_id: str) -> GeoJSONSource | None:
        ...

    def add_source(self, source_id: str, spec: dict[str, Any]) -> None:
        ...

    def remove_source(self, source_id: str) -> None:
        ...

    def get_layer(self, layer_id: str) -> dict[str, Any] | None:
        ...

    def add_layer(self, spec: dict[str, Any]) -> None:
        ...

    def remove_layer(self, layer_id: str) -> None:
        ...

    def query_rendered_features(
        self,
        point: tuple[float, float],
        layers: Sequence[str],
    ) -> list[dict[str, Any]]:
        ...

    def ease_to(self, center: tuple[float, float], zoom: float) -> None:
        ...

    def get_zoom(self) -> float:
        ...

    def set_cursor(self, cursor: str) -> None:
        ...


def supports_leaf_expansion(source: Any) -> bool:
    """Check if a source can list the leaves of a cluster."""
    return callable(getattr(source, "get_cluster_leaves", None))


def supports_expansion_zoom(source: Any) -> bool:
    """Check if a source can report the zoom at which a cluster expands."""
    return callable(getattr(source, "get_cluster_expansion_zoom", None))


def supports_popups(map_handle: Any) -> bool:
    """Check if the map can show a location-anchored popup."""
    return callable(getattr(map_handle, "show_popup", None))
