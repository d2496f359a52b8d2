from __future__ import annotations
import numpy as np
import pytest

from gaitlab.config.modes import get_gait_mode_config
from gaitlab.errors import ConfigurationError
from gaitlab.pipeline.phases import (
    STANDARD_PHASES,
    GaitPhase,
    PhaseDetector,
    PhaseTransition,
    validate_transitions,
)


def test_catalog_is_contiguous_over_0_100():
    phases = STANDARD_PHASES
    assert phases[0].start_percent == 0.0
    assert phases[-1].end_percent == 100.0
    for a, b in zip(phases[:-1], phases[1:]):
        assert a.end_percent == b.start_percent
    assert [p.abbreviation for p in phases] == ["IC", "LR", "MSt", "TSt", "PSw", "ISw", "MSw", "TSw"]


def test_shared_boundary_resolves_to_later_phase():
    det = PhaseDetector()
    assert det.phase_at_percent(12).abbreviation == "MSt"
    assert det.phase_at_percent(11.999).abbreviation == "LR"
    assert det.phase_at_percent(0).abbreviation == "IC"
    assert det.phase_at_percent(100).abbreviation == "TSw"


def test_every_percent_maps_to_exactly_one_phase():
    det = PhaseDetector()
    for pct in np.linspace(0.0, 100.0, 1001):
        hits = [
            p for p in det.phases
            if p.start_percent <= pct < p.end_percent or (pct == 100.0 and p is det.phases[-1])
        ]
        assert len(hits) == 1
        assert det.phase_at_percent(pct) is hits[0]


def test_out_of_range_percent_has_no_phase():
    det = PhaseDetector()
    assert det.phase_at_percent(-0.1) is None
    assert det.phase_at_percent(100.5) is None
    assert det.phase_tag(150) == ""


def test_mode_catalogs_use_mode_boundaries():
    run = PhaseDetector.for_mode(get_gait_mode_config("run"))
    assert run.phase_at_percent(10).abbreviation == "MSt"
    assert run.stance_swing_boundary() == 55.0
    walk = PhaseDetector.for_mode(get_gait_mode_config("walk"))
    assert walk.stance_swing_boundary() == 62.0


def test_markers_labels_backgrounds():
    det = PhaseDetector()
    markers = det.phase_markers()
    assert len(markers) == 7
    assert markers[0] == {"percent": 2.0, "phase": "LR", "color": "#f97316", "label": "LR"}
    labels = det.phase_labels()
    assert labels[0]["position"] == 1.0
    bgs = det.phase_backgrounds(opacity=0.2)
    assert len(bgs) == 8 and all(b["opacity"] == 0.2 for b in bgs)


def test_detect_phase_transitions_frames():
    tr = PhaseDetector().detect_phase_transitions(101)
    assert len(tr) == 7
    assert (tr[0].phase, tr[0].percent, tr[0].frame) == ("LR", 2.0, 2)
    assert (tr[-1].phase, tr[-1].percent, tr[-1].frame) == ("TSw", 87.0, 87)


def test_validate_transitions_clamps_gaps_without_mutating_input():
    raw = [
        PhaseTransition("PSw", 60.0, 60),
        PhaseTransition("IC", 0.0, 0),
        PhaseTransition("LR", 2.0, 2),
    ]
    out = validate_transitions(raw)
    assert [t.percent for t in out] == [0.0, 5.0, 45.0]
    assert [t.phase for t in out] == ["IC", "LR", "PSw"]
    assert raw[2].percent == 2.0 and raw[0].percent == 60.0


def test_detector_rejects_broken_catalogs():
    a = GaitPhase("A", "A", 0.0, 40.0, "#000", "")
    b = GaitPhase("B", "B", 50.0, 100.0, "#000", "")
    with pytest.raises(ConfigurationError):
        PhaseDetector([a, b])
    with pytest.raises(ConfigurationError):
        PhaseDetector([a])
    with pytest.raises(ConfigurationError):
        PhaseDetector([])
    with pytest.raises(ConfigurationError):
        PhaseDetector([GaitPhase("Z", "Z", 0.0, 0.0, "#000", ""), GaitPhase("A", "A", 0.0, 100.0, "#000", "")])


def test_label_percents():
    det = PhaseDetector()
    assert det.label_percents([0, 5, 20, 40, 99]) == ["IC", "LR", "MSt", "TSt", "TSw"]
