"""Gait sub-phase catalog and lookups over a 0-100 % cycle.

Phases are half-open ``[start, end)`` intervals; the last phase also owns 100 %,
so every percent in [0, 100] maps to exactly one phase.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..config.constants import PHASE_MAX_WIDTH, PHASE_MIN_WIDTH, PHASE_TAGS
from ..config.modes import GaitModeConfig, validate_phase_boundaries
from ..errors import ConfigurationError

__all__ = [
    "GaitPhase",
    "PhaseTransition",
    "STANDARD_PHASES",
    "PhaseDetector",
    "validate_transitions",
]


@dataclass(frozen=True)
class GaitPhase:
    name: str
    abbreviation: str
    start_percent: float
    end_percent: float
    color: str
    description: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "abbreviation": self.abbreviation,
            "start_percent": self.start_percent,
            "end_percent": self.end_percent,
            "color": self.color,
            "description": self.description,
        }


@dataclass(frozen=True)
class PhaseTransition:
    phase: str
    percent: float
    frame: int
    detected: bool = True


# name, color, description per tag
_PHASE_INFO = {
    "IC": ("Initial Contact", "#ef4444", "Heel strike - foot first contacts ground"),
    "LR": ("Loading Response", "#f97316", "Weight acceptance and shock absorption"),
    "MSt": ("Mid Stance", "#eab308", "Single limb support over the foot"),
    "TSt": ("Terminal Stance", "#22c55e", "Heel off and weight shift forward"),
    "PSw": ("Pre-Swing", "#06b6d4", "Toe off preparation and double support"),
    "ISw": ("Initial Swing", "#3b82f6", "Foot clearance and acceleration"),
    "MSw": ("Mid Swing", "#8b5cf6", "Limb advancement to vertical"),
    "TSw": ("Terminal Swing", "#ec4899", "Deceleration and preparation for contact"),
}

STANDARD_BOUNDARIES = (0.0, 2.0, 12.0, 31.0, 50.0, 62.0, 75.0, 87.0, 100.0)


def _catalog(bounds: Sequence[float]) -> Tuple[GaitPhase, ...]:
    b = validate_phase_boundaries(bounds)
    return tuple(
        GaitPhase(_PHASE_INFO[tag][0], tag, b[k], b[k + 1], _PHASE_INFO[tag][1], _PHASE_INFO[tag][2])
        for k, tag in enumerate(PHASE_TAGS)
    )


STANDARD_PHASES: Tuple[GaitPhase, ...] = _catalog(STANDARD_BOUNDARIES)


def validate_transitions(transitions: Sequence[PhaseTransition],
                         min_width: float = PHASE_MIN_WIDTH,
                         max_width: float = PHASE_MAX_WIDTH) -> List[PhaseTransition]:
    """Sort transitions and clamp each gap to the previous one into [min_width, max_width].

    Meant for empirically detected boundaries; inputs are not modified.
    """
    ordered = sorted(transitions, key=lambda t: t.percent)
    out: List[PhaseTransition] = []
    for k, tr in enumerate(ordered):
        if k > 0:
            prev = out[-1].percent
            gap = tr.percent - prev
            if gap < min_width:
                tr = replace(tr, percent=prev + min_width)
            elif gap > max_width:
                tr = replace(tr, percent=prev + max_width)
        out.append(tr)
    return out


class PhaseDetector:
    """Phase lookups for one catalog (standard, or derived from a gait mode)."""

    def __init__(self, phases: Sequence[GaitPhase] = STANDARD_PHASES):
        phases = tuple(phases)
        if len(phases) == 0:
            raise ConfigurationError("Phase catalog is empty")
        for p in phases:
            if not p.start_percent < p.end_percent:
                raise ConfigurationError(f"Phase {p.abbreviation} has an empty range")
        for a, b in zip(phases[:-1], phases[1:]):
            if a.end_percent != b.start_percent:
                raise ConfigurationError(f"Phases {a.abbreviation} and {b.abbreviation} are not contiguous")
        if phases[0].start_percent != 0.0 or phases[-1].end_percent != 100.0:
            raise ConfigurationError("Phase catalog must cover 0..100 %")
        self.phases = phases

    @classmethod
    def for_mode(cls, config: GaitModeConfig) -> "PhaseDetector":
        return cls(_catalog(config.phase_boundaries))

    def phase_at_percent(self, percent: float) -> Optional[GaitPhase]:
        p = float(percent)
        last = self.phases[-1]
        if p == last.end_percent:
            return last
        for phase in self.phases:
            if phase.start_percent <= p < phase.end_percent:
                return phase
        return None

    def phase_tag(self, percent: float) -> str:
        phase = self.phase_at_percent(percent)
        return phase.abbreviation if phase is not None else ""

    def phase_markers(self) -> List[dict]:
        """Phase start lines for chart overlays (the 0 % start is omitted)."""
        return [
            {"percent": p.start_percent, "phase": p.abbreviation, "color": p.color, "label": p.abbreviation}
            for p in self.phases
            if p.start_percent > 0
        ]

    def phase_labels(self) -> List[dict]:
        return [
            {"position": 0.5 * (p.start_percent + p.end_percent), "label": p.abbreviation, "color": p.color}
            for p in self.phases
        ]

    def phase_backgrounds(self, opacity: float = 0.1) -> List[dict]:
        return [
            {
                "start_percent": p.start_percent,
                "end_percent": p.end_percent,
                "color": p.color,
                "opacity": opacity,
                "label": p.abbreviation,
            }
            for p in self.phases
        ]

    def stance_swing_boundary(self) -> float:
        """Toe-off percent: end of pre-swing, 60 when the catalog has no PSw."""
        for p in self.phases:
            if p.abbreviation == "PSw":
                return p.end_percent
        return 60.0

    def detect_phase_transitions(self, cycle_length: int) -> List[PhaseTransition]:
        """Catalog boundaries as transitions into each following phase, with frame indices."""
        n = max(1, int(cycle_length))
        return [
            PhaseTransition(
                phase=nxt.abbreviation,
                percent=cur.end_percent,
                frame=int(round(cur.end_percent / 100.0 * (n - 1))),
            )
            for cur, nxt in zip(self.phases[:-1], self.phases[1:])
        ]

    def label_percents(self, percents) -> List[str]:
        return [self.phase_tag(p) for p in percents]
