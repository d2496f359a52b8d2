"""Gait cycle detection, normalization and averaging from foot-contact flags.

A cycle runs from one initial contact (IC) of a leg to the next IC of the same
leg. Cycles outside the duration window are dropped silently; callers that
need a minimum number of cycles check ``cycle_statistics``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config.constants import (
    CYCLE_MAX_DUR_S,
    CYCLE_MIN_DUR_S,
    CYCLE_N,
    CYCLES_EXCELLENT,
    CYCLES_GOOD,
    JOINTS,
    LEGS,
)
from ..config.modes import GaitModeConfig
from ..errors import ConfigurationError, ValidationError
from ..math.rounding import round_array, round_half_up

__all__ = [
    "GaitRecording",
    "GaitEvent",
    "GaitCycle",
    "NormalizedCycle",
    "contacts_from_stance",
    "detect_initial_contacts",
    "extract_gait_cycles",
    "resample",
    "normalize_gait_cycles",
    "calculate_average_angles",
    "calculate_cycle_spread",
    "cycle_statistics",
    "analyze_gait_pattern",
]

logger = logging.getLogger(__name__)

_DUR_EPS = 1e-9


@dataclass
class GaitRecording:
    """Per-frame bilateral joint angles (deg) and foot-contact flags.

    angles: {joint: {leg: (T,)}} for any subset of JOINTS.
    contacts: {leg: (T,) bool}, True while the foot is on the ground.
    time: (T,) seconds; defaults to frame / frame_rate.
    """
    frame_rate: float
    angles: Dict[str, Dict[str, np.ndarray]]
    contacts: Dict[str, np.ndarray]
    time: Optional[np.ndarray] = None

    def __post_init__(self):
        if not np.isfinite(self.frame_rate) or self.frame_rate <= 0:
            raise ConfigurationError(f"Frame rate must be positive, got {self.frame_rate}")
        self.frame_rate = float(self.frame_rate)
        n = None
        angles: Dict[str, Dict[str, np.ndarray]] = {}
        for joint, sides in self.angles.items():
            if joint not in JOINTS:
                raise ConfigurationError(f"Unknown joint '{joint}'. Expected one of {list(JOINTS)}")
            angles[joint] = {}
            for leg in LEGS:
                if leg not in sides:
                    raise ValidationError(f"Missing {leg} {joint} series")
                arr = np.asarray(sides[leg], dtype=float).ravel()
                if n is None:
                    n = arr.size
                elif arr.size != n:
                    raise ValidationError(
                        f"{leg} {joint} series has {arr.size} frames, expected {n}"
                    )
                angles[joint][leg] = arr
        contacts: Dict[str, np.ndarray] = {}
        for leg in LEGS:
            if leg not in self.contacts:
                raise ValidationError(f"Missing {leg} foot-contact series")
            c = np.asarray(self.contacts[leg], dtype=bool).ravel()
            if n is None:
                n = c.size
            elif c.size != n:
                raise ValidationError(f"{leg} foot-contact series has {c.size} frames, expected {n}")
            contacts[leg] = c
        self.angles = angles
        self.contacts = contacts
        n = int(n or 0)
        if self.time is None:
            self.time = np.arange(n, dtype=float) / self.frame_rate
        else:
            t = np.asarray(self.time, dtype=float).ravel()
            if t.size != n:
                raise ValidationError(f"Time axis has {t.size} samples, expected {n}")
            self.time = t

    @property
    def n_frames(self) -> int:
        return int(self.time.size)

    @property
    def joints(self) -> List[str]:
        return [j for j in JOINTS if j in self.angles]


@dataclass(frozen=True)
class GaitEvent:
    frame: int
    time: float
    type: str
    leg: str


@dataclass
class GaitCycle:
    leg: str
    start_frame: int
    end_frame: int
    start_time: float
    end_time: float
    duration: float
    frames: np.ndarray
    angles: Dict[str, np.ndarray] = field(default_factory=dict)


@dataclass
class NormalizedCycle:
    leg: str
    angles: Dict[str, np.ndarray]

    @property
    def points_count(self) -> int:
        return max((a.size for a in self.angles.values()), default=0)


def contacts_from_stance(stance: np.ndarray) -> np.ndarray:
    """Indices where the contact flag switches False -> True."""
    s = np.asarray(stance, dtype=bool)
    if s.size < 2:
        return np.zeros(0, dtype=int)
    return np.flatnonzero((~s[:-1]) & s[1:]) + 1


def detect_initial_contacts(recording: GaitRecording) -> List[GaitEvent]:
    events: List[GaitEvent] = []
    for leg in LEGS:
        for i in contacts_from_stance(recording.contacts[leg]):
            events.append(GaitEvent(int(i), float(recording.time[i]), "IC", leg))
    leg_order = {leg: k for k, leg in enumerate(LEGS)}
    events.sort(key=lambda e: (e.frame, leg_order[e.leg]))
    return events


def extract_gait_cycles(recording: GaitRecording, events: Sequence[GaitEvent],
                        min_duration_s: float = CYCLE_MIN_DUR_S,
                        max_duration_s: float = CYCLE_MAX_DUR_S) -> List[GaitCycle]:
    """Pair consecutive same-leg ICs into cycles within [min, max] seconds.

    The cycle includes both IC frames; samples past the recording end are cut.
    """
    cycles: List[GaitCycle] = []
    n = recording.n_frames
    for leg in LEGS:
        ics = [e for e in events if e.leg == leg and e.type == "IC"]
        for start, end in zip(ics[:-1], ics[1:]):
            duration = float(end.time - start.time)
            if duration < min_duration_s - _DUR_EPS or duration > max_duration_s + _DUR_EPS:
                logger.debug(
                    "Cycle %s %d-%d rejected: %.2fs outside [%.2f, %.2f]",
                    leg, start.frame, end.frame, duration, min_duration_s, max_duration_s,
                )
                continue
            s = max(0, int(start.frame))
            e = min(int(end.frame), n - 1)
            frames = np.arange(s, e + 1, dtype=int)
            angles = {j: recording.angles[j][leg][s:e + 1].copy() for j in recording.joints}
            cycles.append(GaitCycle(
                leg=leg,
                start_frame=int(start.frame),
                end_frame=int(end.frame),
                start_time=float(start.time),
                end_time=float(end.time),
                duration=duration,
                frames=frames,
                angles=angles,
            ))
    return cycles


def resample(values, points_count: int = CYCLE_N) -> np.ndarray:
    """Linear resample to ``points_count`` positions spanning the whole series.

    Positions that land exactly on a sample keep its raw value; interpolated
    positions are rounded to 1 decimal. Length-1 input is broadcast.
    """
    if int(points_count) < 2:
        raise ConfigurationError(f"points_count must be >= 2, got {points_count}")
    a = np.asarray(values, dtype=float).ravel()
    m = int(points_count)
    if a.size == 0:
        return np.zeros(0, dtype=float)
    if a.size == 1:
        return np.full(m, a[0], dtype=float)
    pos = np.arange(m, dtype=float) * ((a.size - 1) / (m - 1))
    lo = np.minimum(np.floor(pos).astype(int), a.size - 1)
    hi = np.minimum(np.ceil(pos).astype(int), a.size - 1)
    w = pos - lo
    y = a[lo] * (1.0 - w) + a[hi] * w
    return np.where(lo == hi, a[lo], round_array(y, 1))


def normalize_gait_cycles(cycles: Sequence[GaitCycle],
                          points_count: int = CYCLE_N) -> List[NormalizedCycle]:
    return [
        NormalizedCycle(c.leg, {j: resample(a, points_count) for j, a in c.angles.items()})
        for c in cycles
    ]


def _leg_stack(normalized: Sequence[NormalizedCycle], leg: str, joint: str, m: int) -> Optional[np.ndarray]:
    used = [
        c.angles[joint] for c in normalized
        if c.leg == leg and joint in c.angles and c.angles[joint].size == m
    ]
    if not used:
        return None
    return np.stack(used, axis=0)


def _points_and_joints(normalized: Sequence[NormalizedCycle], points_count: Optional[int]):
    m = points_count or next((c.points_count for c in normalized if c.points_count), CYCLE_N)
    joints = [j for j in JOINTS if any(j in c.angles for c in normalized)] or list(JOINTS)
    return int(m), joints


def calculate_average_angles(normalized: Sequence[NormalizedCycle],
                             points_count: Optional[int] = None) -> Dict[str, Dict[str, np.ndarray]]:
    """Mean curve per leg and joint (1 decimal); legs without cycles get zeros."""
    m, joints = _points_and_joints(normalized, points_count)
    out: Dict[str, Dict[str, np.ndarray]] = {}
    for leg in LEGS:
        out[leg] = {}
        for joint in joints:
            arr = _leg_stack(normalized, leg, joint, m)
            out[leg][joint] = np.zeros(m, dtype=float) if arr is None else round_array(np.mean(arr, axis=0), 1)
    return out


def calculate_cycle_spread(normalized: Sequence[NormalizedCycle],
                           points_count: Optional[int] = None) -> Dict[str, Dict[str, np.ndarray]]:
    """Across-cycle standard deviation per position (1 decimal)."""
    m, joints = _points_and_joints(normalized, points_count)
    out: Dict[str, Dict[str, np.ndarray]] = {}
    for leg in LEGS:
        out[leg] = {}
        for joint in joints:
            arr = _leg_stack(normalized, leg, joint, m)
            out[leg][joint] = np.zeros(m, dtype=float) if arr is None else round_array(np.std(arr, axis=0), 1)
    return out


def cycle_statistics(cycles: Sequence[GaitCycle], config: Optional[GaitModeConfig] = None) -> dict:
    left = sum(1 for c in cycles if c.leg == "left")
    right = sum(1 for c in cycles if c.leg == "right")
    total = len(cycles)
    avg = float(np.mean([c.duration for c in cycles])) if cycles else 0.0
    if total >= CYCLES_EXCELLENT:
        label = "Excellent"
    elif total >= CYCLES_GOOD:
        label = "Good"
    else:
        label = "Fair"
    stats = {
        "total_cycles": total,
        "left_cycles": left,
        "right_cycles": right,
        "avg_cycle_duration": round_half_up(avg, 2),
        "cycle_quality": label,
    }
    if config is not None:
        stats["min_cycles"] = config.min_cycles
        stats["meets_min_cycles"] = bool(min(left, right) >= config.min_cycles)
    return stats


def analyze_gait_pattern(events: Sequence[GaitEvent]) -> dict:
    """
    Analyze the quality of the detected IC pattern.

    Args:
        events: IC events from both legs, sorted by frame

    Returns:
        Dict with alternation score, duration CV and a quality label
    """
    if len(events) < 4:
        return {'quality': 'insufficient_data', 'alternation_score': 0.0}

    # Check alternation pattern
    legs = [e.leg for e in events]
    total_transitions = len(legs) - 1
    alternations = sum(1 for a, b in zip(legs[:-1], legs[1:]) if a != b)
    alternation_score = alternations / total_transitions if total_transitions > 0 else 0.0

    # Check cycle duration consistency
    cycle_durations: List[float] = []
    for leg in LEGS:
        times = [e.time for e in events if e.leg == leg]
        cycle_durations.extend(float(b - a) for a, b in zip(times[:-1], times[1:]))

    duration_cv = 0.0
    if cycle_durations and np.mean(cycle_durations) > 0:
        duration_cv = float(np.std(cycle_durations) / np.mean(cycle_durations))

    # Overall quality assessment
    if alternation_score > 0.8 and duration_cv < 0.3:
        quality = 'excellent'
    elif alternation_score > 0.6 and duration_cv < 0.5:
        quality = 'good'
    elif alternation_score > 0.4:
        quality = 'fair'
    else:
        quality = 'poor'

    return {
        'quality': quality,
        'alternation_score': float(alternation_score),
        'duration_cv': duration_cv,
        'total_events': len(events),
        'cycle_durations': cycle_durations,
    }
