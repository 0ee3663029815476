"""Unit tests for hit classification and cluster camera targets."""

from src.core.interaction import (
    CameraTarget,
    HitKind,
    classify_hit,
    cluster_camera_target,
    feature_coordinates,
    is_cluster_feature,
)


CLUSTER_FEATURE = {
    "type": "Feature",
    "properties": {"cluster": True, "cluster_id": 7, "point_count": 12},
    "geometry": {"type": "Point", "coordinates": [-117.5, 35.6]},
}

POINT_FEATURE = {
    "type": "Feature",
    "properties": {"id": "us1", "magnitude": 3.2},
    "geometry": {"type": "Point", "coordinates": [-118.0, 34.0]},
}


class TestClassifyHit:
    """Tests for classify_hit()."""

    def test_cluster_takes_precedence(self):
        assert classify_hit([CLUSTER_FEATURE], [POINT_FEATURE]) is HitKind.CLUSTER

    def test_point_only(self):
        assert classify_hit([], [POINT_FEATURE]) is HitKind.POINT

    def test_miss(self):
        assert classify_hit([], []) is HitKind.MISS

    def test_non_cluster_feature_is_not_cluster_hit(self):
        """A feature without cluster properties never counts as a cluster."""
        assert classify_hit([POINT_FEATURE], []) is HitKind.MISS
        assert classify_hit([POINT_FEATURE], [POINT_FEATURE]) is HitKind.POINT


class TestIsClusterFeature:
    """Tests for is_cluster_feature()."""

    def test_detects_cluster(self):
        assert is_cluster_feature(CLUSTER_FEATURE) is True

    def test_point_is_not_cluster(self):
        assert is_cluster_feature(POINT_FEATURE) is False


class TestFeatureCoordinates:
    """Tests for feature_coordinates()."""

    def test_point_coordinates(self):
        assert feature_coordinates(POINT_FEATURE) == (-118.0, 34.0)

    def test_non_point_geometry(self):
        feature = {"geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 1], [0, 1]]]}}

        assert feature_coordinates(feature) is None

    def test_missing_geometry(self):
        assert feature_coordinates({}) is None


class TestClusterCameraTarget:
    """Tests for cluster_camera_target()."""

    def test_steps_in_from_current_zoom(self):
        target = cluster_camera_target(CLUSTER_FEATURE, current_zoom=4.0)

        assert target == CameraTarget(center=(-117.5, 35.6), zoom=6.0)

    def test_uses_expansion_zoom_when_known(self):
        target = cluster_camera_target(CLUSTER_FEATURE, current_zoom=4.0, expansion_zoom=9.0)

        assert target.zoom == 9.0

    def test_zoom_is_capped(self):
        target = cluster_camera_target(CLUSTER_FEATURE, current_zoom=15.5, max_zoom=16)

        assert target.zoom == 16

    def test_expansion_zoom_is_capped(self):
        target = cluster_camera_target(
            CLUSTER_FEATURE, current_zoom=4.0, expansion_zoom=20.0, max_zoom=16
        )

        assert target.zoom == 16

    def test_no_coordinates(self):
        assert cluster_camera_target({"properties": {}}, current_zoom=4.0) is None
