"""Entry points tying cycle detection, phase labelling, ROM and CSV export together.

``run_cycle_analysis`` works on a recorded (or synthetic) angle stream;
``run_joint_analysis`` and ``analyze_joint_points`` serve the single-joint flows.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..config.constants import (
    CYCLE_MAX_DUR_S,
    CYCLE_MIN_DUR_S,
    CYCLE_N,
    SMOOTH_FC_HZ,
    SMOOTH_ORDER,
)
from ..config.modes import GaitModeConfig, cycle_duration_bounds, get_gait_mode_config
from ..errors import ConfigurationError
from ..math.filters import lowpass
from ..math.rom import RomEngine
from .cycles import (
    GaitRecording,
    analyze_gait_pattern,
    calculate_average_angles,
    calculate_cycle_spread,
    cycle_statistics,
    detect_initial_contacts,
    extract_gait_cycles,
    normalize_gait_cycles,
)
from .export import (
    ankle_csv,
    average_cycle_csv,
    cycle_points_csv,
    hip_rom_csv,
    hip_rom_rows,
)
from .generators import CycleDataPoint, JointCycleGenerator, make_rng
from .phases import PhaseDetector

__all__ = ["run_cycle_analysis", "run_joint_analysis", "analyze_joint_points"]

logger = logging.getLogger(__name__)

ModeLike = Union[str, GaitModeConfig]


def _config(mode: ModeLike) -> GaitModeConfig:
    return mode if isinstance(mode, GaitModeConfig) else get_gait_mode_config(mode)


def _phase_overlay(detector: PhaseDetector, points_count: int) -> Dict[str, Any]:
    return {
        "catalog": [p.to_dict() for p in detector.phases],
        "markers": detector.phase_markers(),
        "labels": detector.phase_labels(),
        "backgrounds": detector.phase_backgrounds(),
        "transitions": [
            {"phase": tr.phase, "percent": tr.percent, "frame": tr.frame}
            for tr in detector.detect_phase_transitions(points_count)
        ],
        "stance_swing_boundary": detector.stance_swing_boundary(),
    }


def _smoothed(recording: GaitRecording, fc_hz: float, order: int) -> GaitRecording:
    angles = {
        joint: {leg: lowpass(a, recording.frame_rate, fc_hz, order) for leg, a in sides.items()}
        for joint, sides in recording.angles.items()
    }
    return GaitRecording(
        frame_rate=recording.frame_rate,
        angles=angles,
        contacts=recording.contacts,
        time=recording.time,
    )


def _duration_window(config: GaitModeConfig, options: dict) -> tuple[float, float]:
    policy = options.get("cycle_bounds") or "fixed"
    if policy == "mode":
        lo, hi = cycle_duration_bounds(config)
    elif policy == "fixed":
        lo, hi = CYCLE_MIN_DUR_S, CYCLE_MAX_DUR_S
    else:
        raise ConfigurationError(f"Unknown cycle_bounds policy '{policy}' (expected 'fixed' or 'mode')")
    lo = float(options.get("stride_min_s", lo))
    hi = float(options.get("stride_max_s", hi))
    if not 0.0 < lo <= hi:
        raise ConfigurationError(f"Invalid cycle duration window [{lo}, {hi}]")
    return lo, hi


def run_cycle_analysis(recording: GaitRecording, mode: ModeLike = "walk",
                       options: Optional[dict] = None) -> dict:
    """Cycle detection, normalization, averaging and bilateral ROM for every joint.

    Options:
      - smooth (bool): zero-phase low-pass the angle streams first (default False)
      - smooth_fc_hz / smooth_order: filter settings
      - cycle_bounds: "fixed" (0.8-1.5 s) or "mode" (nominal +/- 35 %)
      - stride_min_s / stride_max_s: explicit duration window override
      - points_count: samples per normalized cycle (default 101)
    """
    options = options if isinstance(options, dict) else {}
    config = _config(mode)
    points_count = int(options.get("points_count", CYCLE_N))
    min_s, max_s = _duration_window(config, options)

    if bool(options.get("smooth", False)):
        fc = float(options.get("smooth_fc_hz", SMOOTH_FC_HZ))
        order = int(options.get("smooth_order", SMOOTH_ORDER))
        recording = _smoothed(recording, fc, order)

    events = detect_initial_contacts(recording)
    cycles = extract_gait_cycles(recording, events, min_s, max_s)
    normalized = normalize_gait_cycles(cycles, points_count)
    average = calculate_average_angles(normalized, points_count)
    spread = calculate_cycle_spread(normalized, points_count)
    stats = cycle_statistics(cycles, config)
    pattern = analyze_gait_pattern(events)

    logger.info(
        "Cycle analysis (%s): %d ICs, %d cycles kept (L=%d R=%d) in [%.2f, %.2f] s",
        config.mode, len(events), stats["total_cycles"], stats["left_cycles"],
        stats["right_cycles"], min_s, max_s,
    )
    if not stats["meets_min_cycles"]:
        logger.warning(
            "Only %d/%d cycles per leg; %s mode expects at least %d",
            stats["left_cycles"], stats["right_cycles"], config.mode, config.min_cycles,
        )

    rom: Dict[str, Any] = {}
    csv: Dict[str, str] = {}
    for joint in recording.joints:
        engine = RomEngine(joint, config)
        rom[joint] = engine.rom_summary(average["left"][joint], average["right"][joint])
        csv[f"{joint}_cycle_csv"] = average_cycle_csv(average, spread, joint)

    detector = PhaseDetector.for_mode(config)
    return {
        "success": True,
        "message": "Gait cycle analysis completed",
        "mode": config.mode,
        "frame_rate": recording.frame_rate,
        "cycles_detected": len(cycles),
        "events": [
            {"frame": e.frame, "time": e.time, "type": e.type, "leg": e.leg} for e in events
        ],
        "cycles": [
            {
                "leg": c.leg,
                "start_frame": c.start_frame,
                "end_frame": c.end_frame,
                "start_time": c.start_time,
                "end_time": c.end_time,
                "duration": c.duration,
            }
            for c in cycles
        ],
        "statistics": stats,
        "pattern": pattern,
        "gait_cycle_percent": np.linspace(0.0, 100.0, points_count),
        "average_angles": average,
        "cycle_sd": spread,
        "rom": rom,
        "phases": _phase_overlay(detector, points_count),
        **csv,
    }


def analyze_joint_points(joint: str, mode: ModeLike, points: Sequence[CycleDataPoint]) -> dict:
    """Bilateral ROM, recommendations and CSV export for ready-made cycle points."""
    config = _config(mode)
    engine = RomEngine(joint, config)
    left = np.array([p.left for p in points], dtype=float)
    right = np.array([p.right for p in points], dtype=float)
    analysis = engine.bilateral_rom(left, right)
    summary = engine.rom_summary(left, right, analysis)

    if engine.profile.joint == "ankle":
        csv = ankle_csv(points, analysis)
    elif engine.profile.joint == "hip":
        times = [p.time for p in points]
        csv = hip_rom_csv(hip_rom_rows(left, right, times, engine))
    else:
        csv = cycle_points_csv(points, engine.profile.joint, config.mode)

    detector = PhaseDetector.for_mode(config)
    return {
        **summary,
        "points": [p.to_dict() for p in points],
        "phases": _phase_overlay(detector, len(points) or CYCLE_N),
        "csv": csv,
    }


def run_joint_analysis(joint: str, mode: ModeLike = "walk", duration_s: float = 10.0,
                       seed: Optional[int] = None) -> dict:
    """Synthetic single-cycle analysis for one joint (dashboard flow)."""
    config = _config(mode)
    if not duration_s > 0:
        raise ConfigurationError(f"duration_s must be positive, got {duration_s}")
    generator = JointCycleGenerator(joint, config)
    points = generator.generate(duration_s, make_rng(seed))
    result = analyze_joint_points(joint, config, points)
    logger.info(
        "%s analysis (%s, seed=%s): %d points, avg ROM %.1f, quality %s",
        joint, config.mode, seed, len(points),
        result["analysis"]["average_rom"], result["analysis"]["data_quality"],
    )
    return result
