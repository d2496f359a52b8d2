from __future__ import annotations
import dataclasses
import pytest

from gaitlab.config.modes import (
    GAIT_MODE_PRESETS,
    available_gait_modes,
    cycle_duration_bounds,
    get_gait_mode_config,
    joint_range,
    phase_boundaries,
    quality_thresholds,
    validate_phase_boundaries,
)
from gaitlab.errors import ConfigurationError


def test_lookup_is_case_insensitive_and_rejects_unknown():
    assert get_gait_mode_config(" Run ").mode == "run"
    with pytest.raises(ConfigurationError):
        get_gait_mode_config("skip")


def test_available_modes():
    assert [m["value"] for m in available_gait_modes()] == ["walk", "run", "sprint"]


def test_mode_bundles():
    walk = get_gait_mode_config("walk")
    sprint = get_gait_mode_config("sprint")
    assert (walk.frame_rate, walk.cycle_duration, walk.min_cycles) == (100.0, 1.1, 3)
    assert (sprint.frame_rate, sprint.cycle_duration, sprint.min_cycles) == (200.0, 0.6, 8)
    r = joint_range("walk", "knee")
    assert (r.min, r.max) == (-20, 80)
    assert r.clamp(95.0) == 80 and r.clamp(-40.0) == -20 and r.clamp(10.0) == 10.0
    with pytest.raises(ConfigurationError):
        walk.joint_range("wrist")


def test_phase_boundaries_and_thresholds():
    starts = phase_boundaries("walk")
    assert starts["IC"] == 0.0 and starts["LR"] == 2.0 and starts["TSw"] == 87.0
    thr = quality_thresholds("run")
    assert list(thr) == ["excellent", "good", "fair", "poor"]
    assert (thr["good"].confidence, thr["good"].asymmetry) == (0.65, 15)


def test_validate_phase_boundaries():
    with pytest.raises(ConfigurationError):
        validate_phase_boundaries([0, 50, 100])
    with pytest.raises(ConfigurationError):
        validate_phase_boundaries([0, 2, 12, 31, 50, 62, 75, 87, 99])
    with pytest.raises(ConfigurationError):
        validate_phase_boundaries([0, 2, 12, 12, 50, 62, 75, 87, 100])


def test_cycle_duration_bounds():
    lo, hi = cycle_duration_bounds(get_gait_mode_config("walk"))
    assert lo == pytest.approx(0.715)
    assert hi == pytest.approx(1.485)
    with pytest.raises(ConfigurationError):
        cycle_duration_bounds(get_gait_mode_config("walk"), tolerance=1.5)


def test_presets_are_read_only():
    with pytest.raises(TypeError):
        GAIT_MODE_PRESETS["hop"] = GAIT_MODE_PRESETS["walk"]  # type: ignore[index]
    with pytest.raises(dataclasses.FrozenInstanceError):
        GAIT_MODE_PRESETS["walk"].frame_rate = 50.0  # type: ignore[misc]
    with pytest.raises(TypeError):
        GAIT_MODE_PRESETS["walk"].joint_ranges["knee"] = None  # type: ignore[index]
