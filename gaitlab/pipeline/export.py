"""CSV text builders for dashboard downloads.

Numbers go through ``fmt_num`` so integral values print without a trailing
'.0' and rounding is half-up.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config.constants import LEGS
from ..math.rom import ROMAnalysis, RomEngine
from ..math.rounding import fmt_num, round_half_up
from .generators import CycleDataPoint

__all__ = [
    "cycle_points_csv",
    "ankle_csv",
    "hip_rom_rows",
    "hip_rom_csv",
    "average_cycle_csv",
]

ANKLE_ROM_HEADER = (
    "LeftMaxDorsiflexion,LeftMaxPlantarflexion,LeftTotalROM,"
    "RightMaxDorsiflexion,RightMaxPlantarflexion,RightTotalROM,Asymmetry,AverageROM"
)
ANKLE_POINTS_HEADER = "GaitCyclePercent,Phase,AnkleLeft,AnkleRight,Time"
HIP_ROM_HEADER = (
    "Frame,Time(s),GaitCycle(%),LeftHip(deg),RightHip(deg),LeftROM(%),RightROM(%),"
    "LeftFlexion(deg),RightFlexion(deg),LeftExtension(deg),RightExtension(deg)"
)

_HIP_ROW_KEYS = (
    "frame", "time", "gait_cycle", "left_angle", "right_angle", "left_rom", "right_rom",
    "left_flexion", "right_flexion", "left_extension", "right_extension",
)


def _row(values) -> str:
    return ",".join(v if isinstance(v, str) else fmt_num(v) for v in values)


def cycle_points_csv(points: Sequence[CycleDataPoint], joint: str, mode: str) -> str:
    """Per-point export: percent (1 dp), phase, time (2 dp), left/right angle, mode."""
    title = joint.capitalize()
    header = f"GaitCyclePercent,Phase,Time(s),{title}Left(deg),{title}Right(deg),GaitMode"
    rows = [
        _row((
            round_half_up(p.gait_cycle_percent, 1),
            p.phase,
            round_half_up(p.time, 2),
            p.left,
            p.right,
            mode,
        ))
        for p in points
    ]
    return "\n".join([header, *rows])


def ankle_csv(points: Sequence[CycleDataPoint], analysis: ROMAnalysis) -> str:
    """ROM summary block, a blank line, then the per-point ankle table."""
    summary = _row((
        analysis.left.max_dorsiflexion,
        analysis.left.max_plantarflexion,
        analysis.left.total_rom,
        analysis.right.max_dorsiflexion,
        analysis.right.max_plantarflexion,
        analysis.right.total_rom,
        analysis.asymmetry,
        analysis.average_rom,
    ))
    rows = [
        _row((p.gait_cycle_percent, p.phase, p.left, p.right, p.time))
        for p in points
    ]
    return "\n".join([ANKLE_ROM_HEADER, summary, "", ANKLE_POINTS_HEADER, *rows])


def _sample(a: np.ndarray, i: int) -> float:
    if i >= a.size or not np.isfinite(a[i]):
        return 0.0
    return float(a[i])


def hip_rom_rows(left, right, times, engine: Optional[RomEngine] = None) -> List[Dict[str, float]]:
    """Per-frame hip table: angle, position within each leg's ROM and flexion/extension from zero.

    ROM % is (angle - max extension) / total ROM * 100, or 0 when the leg shows
    no motion. Missing samples count as 0 deg.
    """
    engine = engine or RomEngine("hip")
    L = np.asarray(left, dtype=float).ravel()
    R = np.asarray(right, dtype=float).ravel()
    t = np.asarray(times, dtype=float).ravel()
    results = {"left": engine.leg_rom(L), "right": engine.leg_rom(R)}
    series = {"left": L, "right": R}

    rows: List[Dict[str, float]] = []
    for i, ti in enumerate(t):
        row: Dict[str, float] = {"frame": i, "time": round_half_up(float(ti), 2), "gait_cycle": i}
        for leg in LEGS:
            angle = _sample(series[leg], i)
            res = results[leg]
            zero = res.anatomical_zero
            pct = (angle - res.max_negative) / res.total_rom * 100.0 if res.total_rom > 0 else 0.0
            row[f"{leg}_angle"] = round_half_up(angle, 1)
            row[f"{leg}_rom"] = round_half_up(pct, 1)
            row[f"{leg}_flexion"] = round_half_up(angle - zero, 1) if angle > zero else 0.0
            row[f"{leg}_extension"] = round_half_up(zero - angle, 1) if angle < zero else 0.0
        rows.append(row)
    return rows


def hip_rom_csv(rows: Sequence[Dict[str, float]]) -> str:
    return "\n".join([HIP_ROM_HEADER, *(_row(r[k] for k in _HIP_ROW_KEYS) for r in rows)])


def average_cycle_csv(average: Dict[str, Dict[str, np.ndarray]],
                      spread: Dict[str, Dict[str, np.ndarray]], joint: str) -> str:
    """Mean and SD curves of one joint for both legs over 0-100 % of the cycle."""
    header = (
        f"cycle_percent,L_{joint}_mean(deg),L_{joint}_sd(deg),"
        f"R_{joint}_mean(deg),R_{joint}_sd(deg)"
    )
    lm, ls = average["left"][joint], spread["left"][joint]
    rm, rs = average["right"][joint], spread["right"][joint]
    n = lm.size
    percent = np.linspace(0.0, 100.0, n) if n > 1 else np.zeros(n)
    rows = [
        _row((round_half_up(float(p), 2), lm[i], ls[i], rm[i], rs[i]))
        for i, p in enumerate(percent)
    ]
    return "\n".join([header, *rows])
