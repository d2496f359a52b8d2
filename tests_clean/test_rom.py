from __future__ import annotations
import numpy as np
import pytest
from numpy.testing import assert_allclose

from gaitlab.errors import ConfigurationError, ValidationError
from gaitlab.math.rom import (
    NET_EXCURSION,
    PEAK_DETECTION,
    PERCENTILE_FALLBACK,
    ZERO_RELATIVE,
    ROMAnalysis,
    ROMResult,
    RomEngine,
    calculate_anatomical_zero,
    find_peaks,
    nearest_rank_percentiles,
    symmetry_index,
    total_rom,
)


def _knee_spike(peak: float = 70.0, trough: float = -5.0) -> np.ndarray:
    a = np.zeros(101)
    a[75] = peak
    a[95] = trough
    return a


def test_single_peak_and_trough_use_peak_detection():
    res = RomEngine("knee", "walk").leg_rom(_knee_spike())
    assert res.max_flexion == 70.0
    assert res.max_extension == -5.0
    assert res.total_rom == 75.0
    assert res.method == PEAK_DETECTION
    # peak stands out by 70 deg (capped 1.0), trough by 5 deg (0.5)
    assert res.confidence == pytest.approx(0.75)


def test_flat_series_is_poor_with_zero_rom():
    flat = np.zeros(101)
    an = RomEngine("knee", "walk").bilateral_rom(flat, flat)
    assert an.asymmetry == 0.0
    assert an.average_rom == 0.0
    assert an.confidence == 0.0
    assert an.data_quality == "poor"
    assert an.left.method == PERCENTILE_FALLBACK


@pytest.mark.parametrize("joint", ["hip", "knee", "ankle"])
def test_identical_sides_are_symmetric_and_at_least_good(joint):
    k = np.arange(101)
    a = 40.0 * np.sin(2 * np.pi * k / 40.0)
    an = RomEngine(joint, "walk").bilateral_rom(a, a.copy())
    assert an.asymmetry == 0.0
    assert an.data_quality in ("excellent", "good")


@pytest.mark.parametrize("series", [[], [5.0], [np.nan, 3.0]])
def test_total_rom_never_negative_on_short_input(series):
    for joint in ("hip", "knee", "ankle"):
        an = RomEngine(joint).bilateral_rom(series, series)
        assert an.left.total_rom >= 0.0
        assert an.right.total_rom >= 0.0


def test_empty_series_gives_zero_result():
    res = RomEngine("hip").leg_rom([])
    assert res.total_rom == 0.0
    assert res.confidence == 0.0


def test_anatomical_zero_uses_leading_window_only():
    a = np.concatenate([np.ones(15), np.full(200, 1000.0)])
    assert calculate_anatomical_zero(a) == 1.0
    assert calculate_anatomical_zero(a, frame_count=5) == 1.0
    assert calculate_anatomical_zero([]) == 0.0


def test_anatomical_zero_of_zero_mean_sine():
    x = np.linspace(0.0, 2 * np.pi, 15, endpoint=False)
    a = np.concatenate([10.0 * np.sin(x), np.full(50, 30.0)])
    assert abs(calculate_anatomical_zero(a)) <= 0.05


def test_bilateral_length_mismatch_raises():
    with pytest.raises(ValidationError):
        RomEngine("ankle").bilateral_rom(np.zeros(10), np.zeros(11))


def test_unknown_joint_and_mode_raise():
    with pytest.raises(ConfigurationError):
        RomEngine("elbow")
    with pytest.raises(ConfigurationError):
        RomEngine("knee", "hop")


def test_peaks_must_strictly_dominate_window():
    a = np.array([0, 0, 0, 5, 5, 0, 0, 0], dtype=float)
    assert find_peaks(a, zero=0.0, window=1) == []
    a[4] = 4.0
    peaks = find_peaks(a, zero=0.0, window=1)
    assert [p.index for p in peaks] == [3]
    assert peaks[0].type == "flexion"


def test_peaks_respect_anatomical_zero():
    a = np.array([10, 10, 10, 8, 10, 10, 10], dtype=float)
    # local minimum below the zero line
    assert [p.type for p in find_peaks(a, zero=9.0, window=1)] == ["extension"]
    # same dip above the zero line is not an extension peak
    assert find_peaks(a, zero=5.0, window=1) == []


def test_peak_window_must_be_positive():
    with pytest.raises(ConfigurationError):
        find_peaks(np.zeros(10), 0.0, window=0)


def test_nearest_rank_percentiles():
    hi, lo = nearest_rank_percentiles(np.arange(100)[::-1])
    assert (hi, lo) == (95.0, 5.0)
    assert nearest_rank_percentiles([]) == (0.0, 0.0)


def test_rom_formulas_differ_when_zero_outside_range():
    assert total_rom(5.0, 2.0, 10.0, ZERO_RELATIVE) == 13.0
    assert total_rom(5.0, 2.0, 10.0, NET_EXCURSION) == 3.0
    assert RomEngine("ankle").profile.formula == ZERO_RELATIVE
    assert RomEngine("knee").profile.formula == NET_EXCURSION
    assert RomEngine("hip").profile.formula == NET_EXCURSION


def test_ankle_terms_and_window():
    a = np.full(101, 5.0)
    a[50] = 20.0
    a[80] = -15.0
    eng = RomEngine("ankle")
    res = eng.leg_rom(a)
    assert res.method == PEAK_DETECTION
    assert res.max_dorsiflexion == 20.0
    assert res.max_plantarflexion == -15.0
    assert res.total_rom == 35.0
    d = res.to_dict()
    assert "max_dorsiflexion" in d and "max_plantarflexion" in d


def test_asymmetry_classification_and_recommendation():
    eng = RomEngine("knee", "walk")
    an = eng.bilateral_rom(_knee_spike(70.0), _knee_spike(60.0))
    assert an.left.total_rom == 75.0
    assert an.right.total_rom == 65.0
    assert an.asymmetry == 10.0
    assert an.average_rom == 70.0
    # asymmetry 10 is not below the "good" limit of 10
    assert an.data_quality == "fair"
    assert eng.recommendations(an) == [
        "Moderate knee asymmetry detected. Include unilateral exercises."
    ]


def _analysis(avg: float, asym: float, quality: str) -> ROMAnalysis:
    r = ROMResult(0.0, 0.0, 0.0, avg, PEAK_DETECTION, 0.9)
    return ROMAnalysis(r, r, asym, avg, quality, 0.9)


def test_hip_recommendations():
    eng = RomEngine("hip")
    assert eng.recommendations(_analysis(35.0, 0.0, "excellent")) == []
    recs = eng.recommendations(_analysis(15.0, 12.0, "poor"))
    assert recs == [
        "Hip ROM is below normal range. Consider mobility exercises.",
        "Significant asymmetry detected. Focus on bilateral training.",
        "Data quality is poor. Consider re-recording with better conditions.",
    ]
    assert eng.recommendations(_analysis(55.0, 5.0, "good")) == [
        "Hip ROM is above normal range. Monitor for hypermobility.",
        "Moderate asymmetry present. Include unilateral exercises.",
    ]


def test_quality_thresholds_follow_mode():
    walk = RomEngine("knee", "walk")
    sprint = RomEngine("knee", "sprint")
    assert walk.classify_quality(0.7, 0.0) == "good"
    # sprint needs confidence > 0.7 for "good"
    assert sprint.classify_quality(0.7, 0.0) == "fair"
    assert walk.classify_quality(0.1, 0.0) == "poor"


def test_rom_summary_shape():
    s = RomEngine("knee").rom_summary(_knee_spike(), _knee_spike())
    assert s["joint"] == "knee"
    assert s["mode"] == "walk"
    assert set(s["details"]) == {"left", "right"}
    assert [p["index"] for p in s["details"]["left"]["peaks"]] == [75, 95]
    assert_allclose(s["analysis"]["confidence"], 0.75)
    assert s["symmetry_index"] == 100.0


def test_symmetry_index():
    assert symmetry_index([10.0, 20.0], [12.0, 16.0]) == 97.0
    assert symmetry_index([0.0], [500.0]) == 0.0
    assert symmetry_index([1.0, 2.0], [1.0]) == 0.0


def test_moderate_confidence_peak_pair_uses_peak_detection():
    a = np.zeros(101)
    a[40] = 30.0
    a[90] = -3.0
    res = RomEngine("knee", "walk").leg_rom(a)
    assert res.method == PEAK_DETECTION
    assert res.total_rom == 33.0
    # strong flexion peak (1.0) and shallow trough (0.3)
    assert res.confidence == pytest.approx(0.65)


def test_weak_peak_pair_falls_back_to_percentiles():
    a = np.zeros(101)
    a[40] = 2.0
    a[90] = -2.0
    res = RomEngine("knee", "walk").leg_rom(a)
    assert res.method == PERCENTILE_FALLBACK
