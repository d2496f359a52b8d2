"""Synthetic joint-angle producers for demos and tests.

Deterministic waveforms per joint and gait mode plus bounded uniform noise.
All randomness comes from an injected ``numpy.random.Generator``; pass a
seeded one (``make_rng(seed)``) for reproducible output.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import numpy as np

from ..config.constants import CYCLE_N, JOINTS, STANCE_FRACTION
from ..config.modes import GaitModeConfig, get_gait_mode_config
from ..errors import ConfigurationError
from ..math.rounding import round_array, round_half_up
from .cycles import GaitRecording
from .phases import PhaseDetector

__all__ = [
    "CycleDataPoint",
    "make_rng",
    "raw_hip_angle",
    "raw_knee_angle",
    "raw_ankle_angle",
    "generate_gait_recording",
    "mode_joint_angle",
    "JointCycleGenerator",
    "average_single_cycle",
]

RngLike = Union[None, int, np.random.Generator]


@dataclass(frozen=True)
class CycleDataPoint:
    gait_cycle_percent: float
    phase: str
    left: float
    right: float
    time: float

    def to_dict(self) -> dict:
        return {
            "gait_cycle_percent": self.gait_cycle_percent,
            "phase": self.phase,
            "left": self.left,
            "right": self.right,
            "time": self.time,
        }


def make_rng(seed: RngLike = None) -> np.random.Generator:
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def _noise(rng: np.random.Generator, n: int, amplitude: float) -> np.ndarray:
    """Uniform noise in [-amplitude/2, amplitude/2)."""
    return (rng.random(n) - 0.5) * amplitude


def _smoothstep(u: np.ndarray) -> np.ndarray:
    return u * u * (3.0 - 2.0 * u)


# --- Raw multi-joint stream (cycle position 0..1) ---------------------------

def raw_hip_angle(pos) -> np.ndarray:
    """Peak flexion late in stance, extension in swing."""
    p = np.asarray(pos, dtype=float)
    return 20.0 * np.sin(2.0 * np.pi * p - np.pi / 3.0)


def raw_knee_angle(pos) -> np.ndarray:
    """Loading-response bump, stance extension, swing flexion."""
    p = np.asarray(pos, dtype=float)
    angle = np.select(
        [p < 0.1, p < 0.6],
        [15.0 * np.sin(p * 10.0 * np.pi), 5.0 * np.cos((p - 0.1) * 2.0 * np.pi)],
        35.0 * np.sin((p - 0.6) * 2.5 * np.pi),
    )
    return np.maximum(0.0, angle)


def raw_ankle_angle(pos) -> np.ndarray:
    p = np.asarray(pos, dtype=float)
    return 15.0 * np.sin(2.0 * np.pi * p + np.pi / 4.0)


def generate_gait_recording(duration_s: float = 10.0, frame_rate: float = 100.0,
                            cycle_duration: float = 1.1, rng: RngLike = None,
                            config: Optional[GaitModeConfig] = None) -> GaitRecording:
    """Continuous bilateral hip/knee/ankle stream with foot-contact flags.

    The right leg runs half a cycle behind the left; each foot is on the
    ground for the first STANCE_FRACTION of its cycle. Every series is clipped
    to the joint ranges of ``config`` (walking when omitted).
    """
    if frame_rate <= 0 or cycle_duration <= 0:
        raise ConfigurationError("frame_rate and cycle_duration must be positive")
    rng = make_rng(rng)
    config = config or get_gait_mode_config("walk")
    n = max(0, int(np.floor(duration_s * frame_rate)))
    t = np.arange(n, dtype=float) / frame_rate
    pos = {
        "left": (t % cycle_duration) / cycle_duration,
        "right": ((t + cycle_duration / 2.0) % cycle_duration) / cycle_duration,
    }
    angles: Dict[str, Dict[str, np.ndarray]] = {"hip": {}, "knee": {}, "ankle": {}}
    contacts: Dict[str, np.ndarray] = {}
    for leg, p in pos.items():
        angles["hip"][leg] = round_array(raw_hip_angle(p) + _noise(rng, n, 3.0), 1)
        angles["knee"][leg] = round_array(raw_knee_angle(p) + _noise(rng, n, 2.0), 1)
        angles["ankle"][leg] = round_array(raw_ankle_angle(p) + _noise(rng, n, 2.0), 1)
        for joint in JOINTS:
            bounds = config.joint_range(joint)
            angles[joint][leg] = np.clip(angles[joint][leg], bounds.min, bounds.max)
        contacts[leg] = p <= STANCE_FRACTION
    return GaitRecording(frame_rate=frame_rate, angles=angles, contacts=contacts, time=t)


# --- Mode-aware single-joint waveforms ---------------------------------------

def _walk_knee(p: np.ndarray) -> np.ndarray:
    u1 = p / 0.08
    u2 = (p - 0.08) / (0.35 - 0.08)
    u3 = (p - 0.35) / (0.60 - 0.35)
    u4 = (p - 0.60) / (0.75 - 0.60)
    u5 = (p - 0.75) / (1.0 - 0.75)
    prog5 = 1.0 - _smoothstep(u5)
    angle = np.select(
        [p <= 0.08, p <= 0.35, p <= 0.60, p <= 0.75],
        [
            5.0 + 10.0 * np.sin(u1 * np.pi) * 0.5,   # loading response bump
            8.0 * (1.0 - u2) + 3.0,                  # mid stance
            3.0 * (1.0 - u3 * 0.8),                  # terminal stance
            1.0 + 60.0 * _smoothstep(u4),            # swing ascent
        ],
        61.0 * prog5 + 5.0 * (1.0 - prog5),          # swing descent
    )
    return np.clip(round_array(angle, 1), 0.0, 70.0)


def _run_knee(p: np.ndarray) -> np.ndarray:
    angle = np.select(
        [p < 0.08, p < 0.55],
        [25.0 * np.sin(p * 12.5 * np.pi), 8.0 * np.cos((p - 0.08) * 2.1 * np.pi)],
        45.0 * np.sin((p - 0.55) * 2.2 * np.pi),
    )
    return np.maximum(-5.0, angle)


def _sprint_knee(p: np.ndarray) -> np.ndarray:
    angle = np.select(
        [p < 0.06, p < 0.50],
        [35.0 * np.sin(p * 16.7 * np.pi), 12.0 * np.cos((p - 0.06) * 2.3 * np.pi)],
        55.0 * np.sin((p - 0.50) * 2.0 * np.pi),
    )
    return np.maximum(-10.0, angle)


def _walk_ankle(p: np.ndarray) -> np.ndarray:
    u1 = p / 0.08
    u2 = (p - 0.08) / (0.35 - 0.08)
    u3 = (p - 0.35) / (0.60 - 0.35)
    u4 = (p - 0.60) / (0.75 - 0.60)
    u5 = (p - 0.75) / (1.0 - 0.75)
    angle = np.select(
        [p <= 0.08, p <= 0.35, p <= 0.60, p <= 0.75],
        [
            5.0 + 3.0 * np.sin(u1 * np.pi),          # heel strike
            5.0 + 8.0 * u2,                          # controlled dorsiflexion
            13.0 + 7.0 * u3,                         # peak dorsiflexion before push-off
            20.0 - 40.0 * _smoothstep(u4),           # push-off plantarflexion
        ],
        -20.0 + 25.0 * _smoothstep(u5),              # return for next contact
    )
    return np.clip(angle, -50.0, 20.0)


def _run_ankle(p: np.ndarray) -> np.ndarray:
    angle = np.where(p <= 0.50, 5.0 + 20.0 * (p / 0.50), 25.0 - 60.0 * ((p - 0.50) / 0.50))
    return np.clip(angle, -50.0, 25.0)


def _sprint_ankle(p: np.ndarray) -> np.ndarray:
    angle = np.where(p <= 0.40, 8.0 + 22.0 * (p / 0.40), 30.0 - 70.0 * ((p - 0.40) / 0.60))
    return np.clip(angle, -50.0, 30.0)


def _mode_hip(p: np.ndarray, config: GaitModeConfig) -> np.ndarray:
    # Walking hip swing scaled with the mode's hip range (50 deg for walking)
    scale = config.joint_range("hip").max / 50.0
    return raw_hip_angle(p) * scale


_WAVEFORMS = {
    ("knee", "walk"): _walk_knee,
    ("knee", "run"): _run_knee,
    ("knee", "sprint"): _sprint_knee,
    ("ankle", "walk"): _walk_ankle,
    ("ankle", "run"): _run_ankle,
    ("ankle", "sprint"): _sprint_ankle,
}

# uniform noise span (deg) added to the base waveform
_WAVEFORM_NOISE = {"hip": 2.0, "knee": 2.0, "ankle": 1.0}


def mode_joint_angle(joint: str, pos, config: GaitModeConfig) -> np.ndarray:
    """Noise-free waveform for one joint in the given mode."""
    p = np.asarray(pos, dtype=float)
    if joint == "hip":
        return _mode_hip(p, config)
    try:
        fn = _WAVEFORMS[(joint, config.mode)]
    except KeyError:
        raise ConfigurationError(f"No waveform for joint '{joint}' in mode '{config.mode}'") from None
    return fn(p)


def average_single_cycle(points: List[CycleDataPoint], cycle_duration: float,
                         frame_rate: Optional[float] = None) -> List[CycleDataPoint]:
    """Collapse per-frame points into one cycle by averaging per whole percent.

    Points are binned by their percent rounded half-up; each bin keeps the
    phase of its first point. With no usable bins the first cycle's worth of
    raw points is returned.
    """
    bins: Dict[int, dict] = {}
    for pt in points:
        pct = int(np.floor(pt.gait_cycle_percent + 0.5))
        if 0 <= pct <= 100 and np.isfinite(pt.left) and np.isfinite(pt.right):
            b = bins.setdefault(pct, {"left": [], "right": [], "phase": pt.phase})
            b["left"].append(pt.left)
            b["right"].append(pt.right)

    out: List[CycleDataPoint] = []
    for pct in range(CYCLE_N):
        b = bins.get(pct)
        if not b:
            continue
        out.append(CycleDataPoint(
            gait_cycle_percent=float(pct),
            phase=b["phase"],
            left=round_half_up(float(np.mean(b["left"])), 1),
            right=round_half_up(float(np.mean(b["right"])), 1),
            time=pct / 100 * cycle_duration,
        ))
    if out:
        return out
    frames_per_cycle = int(np.floor(cycle_duration * (frame_rate or 0.0)))
    return list(points[:frames_per_cycle])


class JointCycleGenerator:
    """Per-joint synthetic bilateral series for one gait mode."""

    def __init__(self, joint: str, mode: Union[str, GaitModeConfig] = "walk"):
        if joint not in JOINTS:
            raise ConfigurationError(f"Unknown joint '{joint}'. Expected one of {list(JOINTS)}")
        self.joint = joint
        self.config = mode if isinstance(mode, GaitModeConfig) else get_gait_mode_config(mode)
        self.bounds = self.config.joint_range(joint)
        self.phases = PhaseDetector.for_mode(self.config)

    def _clamp(self, a: np.ndarray) -> np.ndarray:
        return np.clip(a, self.bounds.min, self.bounds.max)

    def _base(self, pos: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        base = mode_joint_angle(self.joint, pos, self.config)
        noisy = base + _noise(rng, pos.size, _WAVEFORM_NOISE[self.joint])
        return self._clamp(round_array(noisy, 1))

    def _asymmetry(self, base: np.ndarray, factor: float, rng: np.random.Generator) -> np.ndarray:
        angle = base * factor + _noise(rng, base.size, 1.0)
        # light blend back toward the base curve
        angle = angle * 0.95 + base * 0.05
        return self._clamp(round_array(angle, 1))

    def generate_frames(self, duration_s: float = 10.0, rng: RngLike = None) -> List[CycleDataPoint]:
        rng = make_rng(rng)
        fr = self.config.frame_rate
        cd = self.config.cycle_duration
        n = max(0, int(np.floor(duration_s * fr)))
        t = np.arange(n, dtype=float) / fr
        left_pos = (t % cd) / cd
        right_pos = ((t + cd / 2.0) % cd) / cd
        left_factor, right_factor = 0.95 + rng.random(2) * 0.1

        left = self._asymmetry(self._base(left_pos, rng), left_factor, rng)
        right = self._asymmetry(self._base(right_pos, rng), right_factor, rng)
        percents = left_pos * 100.0
        phases = self.phases.label_percents(percents)
        return [
            CycleDataPoint(float(percents[i]), phases[i], float(left[i]), float(right[i]), float(t[i]))
            for i in range(n)
        ]

    def generate(self, duration_s: float = 10.0, rng: RngLike = None) -> List[CycleDataPoint]:
        """Averaged single cycle (<= 101 points) from ``duration_s`` of frames."""
        frames = self.generate_frames(duration_s, rng)
        return average_single_cycle(frames, self.config.cycle_duration, self.config.frame_rate)
