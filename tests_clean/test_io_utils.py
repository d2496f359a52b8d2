from __future__ import annotations
import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from gaitlab.errors import ValidationError
from gaitlab.pipeline.generators import generate_gait_recording, make_rng
from gaitlab.pipeline.io_utils import pick_col, read_angles_bytes, recording_from_frame, sanitize_cols


def recording_csv(duration_s: float = 6.0, seed: int = 0) -> str:
    rec = generate_gait_recording(duration_s=duration_s, rng=make_rng(seed))
    df = pd.DataFrame({"Time (s)": rec.time})
    for joint in rec.joints:
        for leg in ("left", "right"):
            df[f"{leg.capitalize()} {joint.capitalize()} (deg)"] = rec.angles[joint][leg]
    for leg in ("left", "right"):
        df[f"{leg.capitalize()} Foot Contact"] = rec.contacts[leg].astype(int)
    return df.to_csv(index=False)


def test_sanitize_cols():
    assert sanitize_cols([" Left Hip (deg) ", "Time (s)", "R__knee"]) == ["left_hip_deg", "time_s", "r_knee"]


def test_read_skips_preamble_and_builds_recording():
    text = "Device: gait lab\nSubject: 01\n" + recording_csv()
    df = read_angles_bytes(text.encode("utf-8"))
    assert "left_hip_deg" in df.columns and "right_foot_contact" in df.columns
    rec = recording_from_frame(df, 100.0)
    assert rec.joints == ["hip", "knee", "ankle"]
    assert rec.n_frames == 600
    assert rec.contacts["left"].dtype == bool
    assert_allclose(rec.time[:3], [0.0, 0.01, 0.02])


def test_semicolon_delimited_with_frame_index():
    rows = ["frame;l_knee;r_knee;left_contact;right_contact"]
    for i in range(5):
        rows.append(f"{10 + i};{i * 1.5};{-i};{int(i > 1)};0")
    df = read_angles_bytes("\n".join(rows).encode("utf-8"))
    rec = recording_from_frame(df, 50.0)
    assert rec.joints == ["knee"]
    assert_allclose(rec.time, np.arange(5) / 50.0)
    assert_array_equal(rec.contacts["left"], [False, False, True, True, True])
    assert_allclose(rec.angles["knee"]["left"], [0.0, 1.5, 3.0, 4.5, 6.0])


def test_missing_contacts_raise():
    df = read_angles_bytes(b"time_s,left_hip,right_hip\n0,1,2\n0.01,1,2\n")
    with pytest.raises(ValidationError):
        recording_from_frame(df, 100.0)


def test_missing_angles_raise():
    df = read_angles_bytes(b"time_s,left_contact,right_contact\n0,1,0\n0.01,1,0\n")
    with pytest.raises(ValidationError):
        recording_from_frame(df, 100.0)


def test_pick_col_token_fallback():
    df = pd.DataFrame(columns=["lefthipangle", "x"])
    assert pick_col(df, ["left_hip"]) == "lefthipangle"
    with pytest.raises(KeyError):
        pick_col(df, ["right_knee"])
