"""Gait mode presets (walk / run / sprint).

Each mode swaps a coherent bundle of constants: sampling rate, nominal cycle
duration, joint display ranges, phase boundaries and data-quality thresholds.
The table is read-only; components receive a ``GaitModeConfig`` explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from ..errors import ConfigurationError
from .constants import CYCLE_TOLERANCE_FRAC, JOINTS, PHASE_TAGS

__all__ = [
    "JointRange",
    "QualityThreshold",
    "GaitModeConfig",
    "GAIT_MODE_PRESETS",
    "get_gait_mode_config",
    "available_gait_modes",
    "joint_range",
    "phase_boundaries",
    "quality_thresholds",
    "cycle_duration_bounds",
    "validate_phase_boundaries",
]

QUALITY_ORDER = ("excellent", "good", "fair", "poor")


@dataclass(frozen=True)
class JointRange:
    min: float
    max: float
    center: float = 0.0

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))


@dataclass(frozen=True)
class QualityThreshold:
    confidence: float
    asymmetry: float


@dataclass(frozen=True)
class GaitModeConfig:
    """Configuration bundle for one gait mode.

    phase_boundaries: start percent of each phase in PHASE_TAGS order followed
    by the closing 100 (9 values, strictly increasing).
    quality_thresholds: (label, threshold) pairs checked in order.
    """
    mode: str
    label: str
    description: str
    y_axis_range: JointRange
    joint_ranges: Mapping[str, JointRange]
    phase_boundaries: Tuple[float, ...]
    frame_rate: float
    cycle_duration: float
    min_cycles: int
    max_cycles: int
    quality_thresholds: Tuple[Tuple[str, QualityThreshold], ...]

    def joint_range(self, joint: str) -> JointRange:
        try:
            return self.joint_ranges[joint]
        except KeyError:
            raise ConfigurationError(f"Unknown joint '{joint}'. Expected one of {list(JOINTS)}") from None

    def phase_starts(self) -> Dict[str, float]:
        return dict(zip(PHASE_TAGS, self.phase_boundaries[:-1]))


def validate_phase_boundaries(bounds) -> Tuple[float, ...]:
    """Check boundaries start at 0, end at 100 and strictly increase."""
    b = tuple(float(x) for x in bounds)
    if len(b) != len(PHASE_TAGS) + 1:
        raise ConfigurationError(f"Expected {len(PHASE_TAGS) + 1} phase boundaries, got {len(b)}")
    if b[0] != 0.0 or b[-1] != 100.0:
        raise ConfigurationError(f"Phase boundaries must span 0..100, got {b[0]}..{b[-1]}")
    if any(b1 <= b0 for b0, b1 in zip(b[:-1], b[1:])):
        raise ConfigurationError(f"Phase boundaries must be strictly increasing: {b}")
    return b


def _thresholds(*pairs: Tuple[float, float]) -> Tuple[Tuple[str, QualityThreshold], ...]:
    return tuple((name, QualityThreshold(c, a)) for name, (c, a) in zip(QUALITY_ORDER, pairs))


def _mode(mode: str, label: str, description: str, y_axis, hip, knee, ankle,
          bounds, frame_rate: float, cycle_duration: float, min_cycles: int,
          max_cycles: int, thresholds) -> GaitModeConfig:
    return GaitModeConfig(
        mode=mode,
        label=label,
        description=description,
        y_axis_range=JointRange(*y_axis),
        joint_ranges=MappingProxyType({
            "hip": JointRange(*hip),
            "knee": JointRange(*knee),
            "ankle": JointRange(*ankle),
        }),
        phase_boundaries=validate_phase_boundaries(bounds),
        frame_rate=float(frame_rate),
        cycle_duration=float(cycle_duration),
        min_cycles=int(min_cycles),
        max_cycles=int(max_cycles),
        quality_thresholds=_thresholds(*thresholds),
    )


GAIT_MODE_PRESETS: Mapping[str, GaitModeConfig] = MappingProxyType({
    "walk": _mode(
        "walk", "Walking", "Normal walking gait analysis",
        y_axis=(-20, 80), hip=(-50, 50), knee=(-20, 80), ankle=(-30, 30),
        bounds=(0, 2, 12, 31, 50, 62, 75, 87, 100),
        frame_rate=100, cycle_duration=1.1, min_cycles=3, max_cycles=15,
        thresholds=((0.8, 5), (0.6, 10), (0.4, 15), (0.2, 20)),
    ),
    "run": _mode(
        "run", "Running", "Running gait analysis",
        y_axis=(-30, 100), hip=(-60, 60), knee=(-30, 100), ankle=(-40, 40),
        bounds=(0, 2, 10, 25, 45, 55, 70, 85, 100),
        frame_rate=120, cycle_duration=0.8, min_cycles=5, max_cycles=20,
        thresholds=((0.85, 8), (0.65, 15), (0.45, 20), (0.25, 25)),
    ),
    "sprint": _mode(
        "sprint", "Sprinting", "Sprint gait analysis",
        y_axis=(-40, 120), hip=(-70, 70), knee=(-40, 120), ankle=(-50, 50),
        bounds=(0, 2, 8, 20, 40, 50, 65, 80, 100),
        frame_rate=200, cycle_duration=0.6, min_cycles=8, max_cycles=25,
        thresholds=((0.9, 10), (0.7, 18), (0.5, 25), (0.3, 30)),
    ),
})


def get_gait_mode_config(mode: str) -> GaitModeConfig:
    try:
        return GAIT_MODE_PRESETS[str(mode).strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown gait mode '{mode}'. Expected one of {sorted(GAIT_MODE_PRESETS)}"
        ) from None


def available_gait_modes() -> List[dict]:
    return [
        {"value": cfg.mode, "label": cfg.label, "description": cfg.description}
        for cfg in GAIT_MODE_PRESETS.values()
    ]


def joint_range(mode: str, joint: str) -> JointRange:
    return get_gait_mode_config(mode).joint_range(joint)


def phase_boundaries(mode: str) -> Dict[str, float]:
    return get_gait_mode_config(mode).phase_starts()


def quality_thresholds(mode: str) -> Dict[str, QualityThreshold]:
    return dict(get_gait_mode_config(mode).quality_thresholds)


def cycle_duration_bounds(config: GaitModeConfig,
                          tolerance: float = CYCLE_TOLERANCE_FRAC) -> Tuple[float, float]:
    """Duration window derived from the mode's nominal cycle (nominal +/- tolerance)."""
    if not (0.0 <= tolerance < 1.0):
        raise ConfigurationError(f"Cycle tolerance must be in [0, 1), got {tolerance}")
    nominal = float(config.cycle_duration)
    return nominal * (1.0 - tolerance), nominal * (1.0 + tolerance)
