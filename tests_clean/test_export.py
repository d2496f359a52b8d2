from __future__ import annotations
import numpy as np

from gaitlab.math.rom import RomEngine
from gaitlab.pipeline.cycles import calculate_average_angles, calculate_cycle_spread
from gaitlab.pipeline.export import (
    ANKLE_POINTS_HEADER,
    ANKLE_ROM_HEADER,
    HIP_ROM_HEADER,
    ankle_csv,
    average_cycle_csv,
    cycle_points_csv,
    hip_rom_csv,
    hip_rom_rows,
)
from gaitlab.pipeline.generators import CycleDataPoint


def _points():
    return [
        CycleDataPoint(0.0, "IC", 5.0, 4.2, 0.0),
        CycleDataPoint(12.36, "LR", 5.0, 6.5, 0.016),
        CycleDataPoint(50.0, "PSw", -1.5, 0.0, 0.55),
    ]


def test_cycle_points_csv_three_frames():
    lines = cycle_points_csv(_points(), "knee", "walk").split("\n")
    assert len(lines) == 4
    assert lines[0] == "GaitCyclePercent,Phase,Time(s),KneeLeft(deg),KneeRight(deg),GaitMode"
    assert lines[1] == "0,IC,0,5,4.2,walk"
    assert lines[2] == "12.4,LR,0.02,5,6.5,walk"
    assert lines[3] == "50,PSw,0.55,-1.5,0,walk"


def test_hip_rom_rows_three_frames():
    rows = hip_rom_rows([10.0, 20.0, 30.0], [0.0, 0.0, 0.0], [0.0, 0.011, 0.02], RomEngine("hip"))
    assert len(rows) == 3
    # left: zero 20, percentile range 10..30; right is flat
    assert rows[0]["left_rom"] == 0.0 and rows[2]["left_rom"] == 100.0
    assert rows[0]["left_extension"] == 10.0 and rows[2]["left_flexion"] == 10.0
    assert rows[1]["time"] == 0.01
    assert all(r["right_rom"] == 0.0 for r in rows)

    lines = hip_rom_csv(rows).split("\n")
    assert len(lines) == 4
    assert lines[0] == HIP_ROM_HEADER
    assert lines[1] == "0,0,0,10,0,0,0,0,0,10,0"
    assert lines[3] == "2,0.02,2,30,0,100,0,10,0,0,0"


def test_hip_rom_rows_missing_samples_count_as_zero():
    rows = hip_rom_rows([np.nan, 5.0], [1.0], [0.0, 0.01])
    assert rows[0]["left_angle"] == 0.0
    assert rows[1]["right_angle"] == 0.0


def test_ankle_csv_layout():
    pts = _points()
    eng = RomEngine("ankle")
    analysis = eng.bilateral_rom([p.left for p in pts], [p.right for p in pts])
    lines = ankle_csv(pts, analysis).split("\n")
    assert lines[0] == ANKLE_ROM_HEADER
    assert len(lines[1].split(",")) == 8
    assert lines[2] == ""
    assert lines[3] == ANKLE_POINTS_HEADER
    assert lines[5] == "12.36,LR,5,6.5,0.016"
    assert len(lines) == 7


def test_average_cycle_csv():
    avg = calculate_average_angles([], 11)
    sd = calculate_cycle_spread([], 11)
    lines = average_cycle_csv(avg, sd, "knee").split("\n")
    assert lines[0] == "cycle_percent,L_knee_mean(deg),L_knee_sd(deg),R_knee_mean(deg),R_knee_sd(deg)"
    assert len(lines) == 12
    assert lines[1] == "0,0,0,0,0"
    assert lines[-1] == "100,0,0,0,0"


def test_hip_flexion_cells_are_rounded():
    left = [1.1] * 15 + [12.3]
    rows = hip_rom_rows(left, [0.0] * 16, [i / 100 for i in range(16)])
    assert rows[-1]["left_flexion"] == 11.2
    last = hip_rom_csv(rows).split("\n")[-1].split(",")
    assert last[7] == "11.2"
