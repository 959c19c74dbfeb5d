"""Tests for environment driven configuration helpers."""

from __future__ import annotations

import pytest

from ride_navigation import config
from ride_navigation.navigator import NavigationSettings


def test_env_float(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RIDE_NAV_TEST_FLOAT", "12.5")
    assert config._env_float("RIDE_NAV_TEST_FLOAT", 1.0) == 12.5
    monkeypatch.setenv("RIDE_NAV_TEST_FLOAT", "not-a-number")
    assert config._env_float("RIDE_NAV_TEST_FLOAT", 1.0) == 1.0
    monkeypatch.delenv("RIDE_NAV_TEST_FLOAT")
    assert config._env_float("RIDE_NAV_TEST_FLOAT", 3.0) == 3.0


def test_env_int(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RIDE_NAV_TEST_INT", "7")
    assert config._env_int("RIDE_NAV_TEST_INT", 1) == 7
    monkeypatch.setenv("RIDE_NAV_TEST_INT", "7.5")
    assert config._env_int("RIDE_NAV_TEST_INT", 1) == 1


@pytest.mark.parametrize(
    "raw, expected",
    [("1", True), ("yes", True), ("ON", True), ("0", False), ("off", False), ("maybe", None)],
)
def test_env_bool(monkeypatch: pytest.MonkeyPatch, raw: str, expected) -> None:
    monkeypatch.setenv("RIDE_NAV_TEST_BOOL", raw)
    default = object()
    result = config._env_bool("RIDE_NAV_TEST_BOOL", default)  # type: ignore[arg-type]
    if expected is None:
        assert result is default
    else:
        assert result is expected


def test_settings_default_to_config_constants() -> None:
    settings = NavigationSettings()
    assert settings.max_snap_distance_m == config.SNAP_MAX_DISTANCE_M
    assert settings.snap_window_size == config.SNAP_WINDOW_SIZE
    assert settings.arrival_dwell_s == config.ARRIVAL_DWELL_SECONDS
    assert settings.moving_speed_threshold_mps == config.MOVING_SPEED_THRESHOLD_MPS
    assert settings.arrival_max_speed_kmh == config.ARRIVAL_MAX_SPEED_KMH
    assert settings.arrival_requires_accuracy is config.ARRIVAL_REQUIRES_ACCURACY
    assert settings.eta_range_min_elapsed_s == config.ETA_RANGE_MIN_ELAPSED_SECONDS
    assert settings.logger is None


def test_settings_can_be_overridden_per_session() -> None:
    settings = NavigationSettings(max_snap_distance_m=35.0, arrival_dwell_s=1.0)
    assert settings.max_snap_distance_m == 35.0
    assert settings.arrival_dwell_s == 1.0
    assert NavigationSettings().max_snap_distance_m == config.SNAP_MAX_DISTANCE_M


def test_3d_map_settings_use_responsive_smoothing() -> None:
    settings = NavigationSettings.for_3d_map()
    assert settings.bearing_smoothing_ratio == config.BEARING_SMOOTHING_RATIO_3D
    assert settings.max_snap_distance_m == config.SNAP_MAX_DISTANCE_M
