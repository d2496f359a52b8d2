"""Centralized constants, thresholds, and column aliases for the gait ROM core."""
from __future__ import annotations

JOINTS = ("hip", "knee", "ankle")
LEGS = ("left", "right")
PHASE_TAGS = ("IC", "LR", "MSt", "TSt", "PSw", "ISw", "MSw", "TSw")

# Cycle extraction / normalization
CYCLE_N = 101               # 0..100 % in 1 % steps
CYCLE_MIN_DUR_S = 0.8       # fixed walking validity window
CYCLE_MAX_DUR_S = 1.5
CYCLE_TOLERANCE_FRAC = 0.35 # nominal duration +/- 35 % for mode-derived bounds
STANCE_FRACTION = 0.6       # foot on ground for the first 60 % of a cycle

# Cycle-count labels for the dashboard summary
CYCLES_EXCELLENT = 8
CYCLES_GOOD = 5

# ROM estimation
ZERO_FRAMES = 15            # samples averaged for anatomical zero
PEAK_STRONG_DEG = 10.0      # peak standing out by this much -> confidence 1
PEAK_CONFIDENCE_CAP = 0.95
PERCENTILE_HI = 0.95
PERCENTILE_LO = 0.05
PERCENTILE_CONFIDENCE = 0.7
PEAK_MIN_CONFIDENCE = 0.3  # peak result must beat this mean confidence

# Phase transition validation (percent of cycle)
PHASE_MIN_WIDTH = 5.0
PHASE_MAX_WIDTH = 40.0

# Optional low-pass pre-filter on raw angle streams
SMOOTH_FC_HZ = 6.0
SMOOTH_ORDER = 2

# Uploaded CSV column aliases (after sanitize_cols)
TIME_CANDS = ["time_s", "time", "timestamp_s", "seconds"]
FRAME_CANDS = ["frame", "frame_index", "index", "packetcounter"]
ANGLE_CANDS = {
    (joint, leg): [
        f"{leg}_{joint}", f"{leg}{joint}", f"{leg[0]}_{joint}", f"{joint}_{leg}",
        f"{joint}{leg}", f"{leg}_{joint}_deg", f"{leg}{joint}_deg", f"{joint}_{leg[0]}",
    ]
    for joint in JOINTS
    for leg in LEGS
}
CONTACT_CANDS = {
    leg: [
        f"{leg}_foot_contact", f"{leg}footcontact", f"{leg}_contact", f"{leg[0]}_contact",
        f"contact_{leg}", f"{leg}_stance", f"stance_{leg[0]}",
    ]
    for leg in LEGS
}
