"""Range-of-motion estimation for hip, knee and ankle angle series.

One engine serves all three joints. A ``JointProfile`` carries what differs
per joint: terminology, peak window, ROM formula and recommendation rules.
The gait mode supplies joint bounds and data-quality thresholds.

Pipeline per leg:
    anatomical zero (mean of first samples) -> windowed peak search ->
    peak ROM, or 95th/5th percentile fallback when peaks are missing or weak.

Nothing in here raises on short or empty input; low trust is reported through
``confidence`` and ``data_quality``. Only mismatched bilateral inputs and an
unknown joint/mode are errors.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..config.constants import (
    PEAK_CONFIDENCE_CAP,
    PEAK_MIN_CONFIDENCE,
    PEAK_STRONG_DEG,
    PERCENTILE_CONFIDENCE,
    PERCENTILE_HI,
    PERCENTILE_LO,
    ZERO_FRAMES,
)
from ..config.modes import GaitModeConfig, get_gait_mode_config
from ..errors import ConfigurationError, ValidationError
from .rounding import round_half_up

__all__ = [
    "NET_EXCURSION",
    "ZERO_RELATIVE",
    "PEAK_DETECTION",
    "PERCENTILE_FALLBACK",
    "JointProfile",
    "JOINT_PROFILES",
    "get_joint_profile",
    "PeakPoint",
    "ROMResult",
    "ROMAnalysis",
    "calculate_anatomical_zero",
    "find_peaks",
    "peak_confidence",
    "total_rom",
    "nearest_rank_percentiles",
    "symmetry_index",
    "RomEngine",
]

logger = logging.getLogger(__name__)

NET_EXCURSION = "net_excursion"   # max - min (hip, knee)
ZERO_RELATIVE = "zero_relative"   # |max - zero| + |min - zero| (ankle)
PEAK_DETECTION = "peak_detection"
PERCENTILE_FALLBACK = "percentile_fallback"

POOR_QUALITY_MSG = "Data quality is poor. Consider re-recording with better conditions."


@dataclass(frozen=True)
class JointProfile:
    """Per-joint constants for the ROM engine.

    positive/negative: names of the motion above/below anatomical zero.
    window: samples on each side a peak must dominate.
    rom_low/rom_high: normal band for the bilateral average ROM (None = unbounded).
    asym_moderate/asym_high: asymmetry cutoffs (deg, inclusive).
    """
    joint: str
    title: str
    positive: str
    negative: str
    window: int
    formula: str
    rom_low: Optional[float]
    rom_high: Optional[float]
    asym_moderate: float
    asym_high: float
    low_msg: str
    high_msg: str
    asym_high_msg: str
    asym_moderate_msg: str
    zero_frames: int = ZERO_FRAMES


JOINT_PROFILES: Mapping[str, JointProfile] = MappingProxyType({
    "hip": JointProfile(
        joint="hip", title="Hip", positive="flexion", negative="extension",
        window=3, formula=NET_EXCURSION,
        rom_low=20.0, rom_high=50.0, asym_moderate=5.0, asym_high=10.0,
        low_msg="Hip ROM is below normal range. Consider mobility exercises.",
        high_msg="Hip ROM is above normal range. Monitor for hypermobility.",
        asym_high_msg="Significant asymmetry detected. Focus on bilateral training.",
        asym_moderate_msg="Moderate asymmetry present. Include unilateral exercises.",
    ),
    "knee": JointProfile(
        joint="knee", title="Knee", positive="flexion", negative="extension",
        window=3, formula=NET_EXCURSION,
        rom_low=30.0, rom_high=None, asym_moderate=5.0, asym_high=15.0,
        low_msg="Knee ROM is below normal range. Consider mobility exercises.",
        high_msg="Knee ROM is above normal range. Monitor for hypermobility.",
        asym_high_msg="High knee asymmetry detected. Focus on bilateral training.",
        asym_moderate_msg="Moderate knee asymmetry detected. Include unilateral exercises.",
    ),
    "ankle": JointProfile(
        joint="ankle", title="Ankle", positive="dorsiflexion", negative="plantarflexion",
        window=1, formula=ZERO_RELATIVE,
        rom_low=20.0, rom_high=None, asym_moderate=5.0, asym_high=10.0,
        low_msg="Ankle ROM is below normal range. Consider mobility exercises.",
        high_msg="Ankle ROM is above normal range. Monitor for hypermobility.",
        asym_high_msg="Significant ankle asymmetry detected. Focus on bilateral training.",
        asym_moderate_msg="Moderate ankle asymmetry detected. Include unilateral exercises.",
    ),
})


def get_joint_profile(joint: Union[str, JointProfile]) -> JointProfile:
    if isinstance(joint, JointProfile):
        return joint
    try:
        return JOINT_PROFILES[str(joint).strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown joint '{joint}'. Expected one of {sorted(JOINT_PROFILES)}"
        ) from None


@dataclass(frozen=True)
class PeakPoint:
    index: int
    value: float
    type: str  # profile.positive | profile.negative
    confidence: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ROMResult:
    anatomical_zero: float
    max_positive: float
    max_negative: float
    total_rom: float
    method: str
    confidence: float
    terms: Tuple[str, str] = field(default=("flexion", "extension"))

    # Terminology aliases
    @property
    def max_flexion(self) -> float:
        return self.max_positive

    @property
    def max_extension(self) -> float:
        return self.max_negative

    @property
    def max_dorsiflexion(self) -> float:
        return self.max_positive

    @property
    def max_plantarflexion(self) -> float:
        return self.max_negative

    def to_dict(self) -> dict:
        pos, neg = self.terms
        return {
            "anatomical_zero": self.anatomical_zero,
            f"max_{pos}": self.max_positive,
            f"max_{neg}": self.max_negative,
            "total_rom": self.total_rom,
            "method": self.method,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ROMAnalysis:
    left: ROMResult
    right: ROMResult
    asymmetry: float
    average_rom: float
    data_quality: str
    confidence: float

    def to_dict(self) -> dict:
        return {
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
            "asymmetry": self.asymmetry,
            "average_rom": self.average_rom,
            "data_quality": self.data_quality,
            "confidence": self.confidence,
        }


def calculate_anatomical_zero(angles, frame_count: int = ZERO_FRAMES) -> float:
    """Mean of the first ``frame_count`` samples (standing posture), 1 decimal."""
    a = np.asarray(angles, dtype=float).ravel()
    head = a[: max(0, min(int(frame_count), a.size))]
    if head.size == 0:
        return 0.0
    return round_half_up(float(np.mean(head)), 1)


def peak_confidence(angles, index: int, window: int, kind: str = "max") -> float:
    """How far a peak stands out from the most extreme sample on each side.

    Mean of the before/after distances divided by PEAK_STRONG_DEG, capped at 1.
    """
    a = np.asarray(angles, dtype=float)
    i, w = int(index), int(window)
    before = a[max(0, i - w):i]
    after = a[i + 1:i + w + 1]
    if before.size == 0 or after.size == 0:
        return 0.0
    pick = np.max if kind == "max" else np.min
    peak = float(a[i])
    d_before = abs(peak - float(pick(before)))
    d_after = abs(peak - float(pick(after)))
    return float(min(0.5 * (d_before + d_after) / PEAK_STRONG_DEG, 1.0))


def find_peaks(angles, zero: float, window: int = 3,
               terms: Tuple[str, str] = ("flexion", "extension")) -> List[PeakPoint]:
    """Strict local extrema on either side of the anatomical zero.

    Sample i (w <= i < n-w) is a positive peak when it lies above ``zero`` and
    is strictly greater than every other sample in a[i-w : i+w+1]; negative
    peaks mirror this below zero. Plateaus and ties never qualify.
    """
    a = np.asarray(angles, dtype=float).ravel()
    w = int(window)
    if w < 1:
        raise ConfigurationError(f"Peak window must be >= 1, got {window}")
    if a.size < 2 * w + 1:
        return []
    win = sliding_window_view(a, 2 * w + 1)
    center = win[:, w]
    neigh = np.delete(win, w, axis=1)
    is_max = (center > zero) & np.all(neigh < center[:, None], axis=1)
    is_min = (center < zero) & np.all(neigh > center[:, None], axis=1)

    peaks: List[PeakPoint] = []
    for k in np.flatnonzero(is_max | is_min):
        i = int(k) + w
        if is_max[k]:
            peaks.append(PeakPoint(i, float(a[i]), terms[0], peak_confidence(a, i, w, "max")))
        else:
            peaks.append(PeakPoint(i, float(a[i]), terms[1], peak_confidence(a, i, w, "min")))
    return peaks


def total_rom(max_positive: float, max_negative: float, zero: float, formula: str) -> float:
    if formula == ZERO_RELATIVE:
        return abs(max_positive - zero) + abs(max_negative - zero)
    if formula == NET_EXCURSION:
        return max(0.0, max_positive - max_negative)
    raise ConfigurationError(f"Unknown ROM formula '{formula}'")


def nearest_rank_percentiles(angles, hi: float = PERCENTILE_HI,
                             lo: float = PERCENTILE_LO) -> Tuple[float, float]:
    """(hi, lo) percentile values picked as sorted[floor(n * p)]."""
    s = np.sort(np.asarray(angles, dtype=float).ravel())
    n = s.size
    if n == 0:
        return 0.0, 0.0
    i_hi = min(n - 1, int(np.floor(n * hi)))
    i_lo = min(n - 1, int(np.floor(n * lo)))
    return float(s[i_hi]), float(s[i_lo])


def symmetry_index(left, right) -> float:
    """100 minus the mean absolute left/right difference, floored at 0.

    Series of different length score 0.
    """
    L = np.asarray(left, dtype=float).ravel()
    R = np.asarray(right, dtype=float).ravel()
    if L.size != R.size or L.size == 0:
        return 0.0
    return float(max(0.0, 100.0 - float(np.mean(np.abs(L - R)))))


class RomEngine:
    """ROM calculator bound to one joint profile and one gait mode."""

    def __init__(self, joint: Union[str, JointProfile] = "knee",
                 config: Union[str, GaitModeConfig] = "walk"):
        self.profile = get_joint_profile(joint)
        self.config = config if isinstance(config, GaitModeConfig) else get_gait_mode_config(config)
        self.bounds = self.config.joint_range(self.profile.joint)

    @property
    def terms(self) -> Tuple[str, str]:
        return self.profile.positive, self.profile.negative

    def anatomical_zero(self, angles, frame_count: Optional[int] = None) -> float:
        n = self.profile.zero_frames if frame_count is None else frame_count
        return calculate_anatomical_zero(angles, n)

    def find_peaks(self, angles, zero: float) -> List[PeakPoint]:
        return find_peaks(angles, zero, self.profile.window, self.terms)

    def _result(self, zero: float, hi: float, lo: float, method: str, confidence: float) -> ROMResult:
        rom = total_rom(hi, lo, zero, self.profile.formula)
        return ROMResult(
            anatomical_zero=zero,
            max_positive=round_half_up(hi, 1),
            max_negative=round_half_up(lo, 1),
            total_rom=round_half_up(rom, 1),
            method=method,
            confidence=float(confidence),
            terms=self.terms,
        )

    def empty_result(self) -> ROMResult:
        return ROMResult(0.0, 0.0, 0.0, 0.0, PERCENTILE_FALLBACK, 0.0, self.terms)

    def percentile_rom(self, angles, zero: float) -> ROMResult:
        a = np.asarray(angles, dtype=float).ravel()
        if a.size == 0:
            return self.empty_result()
        hi, lo = nearest_rank_percentiles(a)
        # Identical bounds carry no information about motion
        confidence = PERCENTILE_CONFIDENCE if hi > lo else 0.0
        return self._result(zero, hi, lo, PERCENTILE_FALLBACK, confidence)

    def rom_from_peaks(self, peaks: List[PeakPoint], zero: float) -> Optional[ROMResult]:
        """ROM from detected peaks, or None when either direction has no peak."""
        pos = [p for p in peaks if p.type == self.profile.positive]
        neg = [p for p in peaks if p.type == self.profile.negative]
        if not pos or not neg:
            return None
        conf = float(np.mean([p.confidence for p in peaks]))
        hi = max(p.value for p in pos)
        lo = min(p.value for p in neg)
        return self._result(zero, hi, lo, PEAK_DETECTION, min(conf, PEAK_CONFIDENCE_CAP))

    def peak_rom(self, angles, zero: float) -> ROMResult:
        peaks = self.find_peaks(angles, zero)
        res = self.rom_from_peaks(peaks, zero)
        if res is not None and res.confidence > PEAK_MIN_CONFIDENCE:
            return res
        logger.debug(
            "%s: percentile fallback (%d peaks, peak result %s)",
            self.profile.joint, len(peaks), "weak" if res is not None else "incomplete",
        )
        return self.percentile_rom(angles, zero)

    def leg_rom(self, angles) -> ROMResult:
        a = np.asarray(angles, dtype=float).ravel()
        a = a[np.isfinite(a)]
        if a.size == 0:
            return self.empty_result()
        zero = self.anatomical_zero(a)
        return self.peak_rom(a, zero)

    def classify_quality(self, confidence: float, asymmetry: float) -> str:
        for label, thr in self.config.quality_thresholds:
            if confidence > thr.confidence and asymmetry < thr.asymmetry:
                return label
        return "poor"

    def bilateral_rom(self, left, right) -> ROMAnalysis:
        L = np.asarray(left, dtype=float).ravel()
        R = np.asarray(right, dtype=float).ravel()
        if L.size != R.size:
            raise ValidationError(
                f"Left and right {self.profile.joint} series differ in length ({L.size} vs {R.size})"
            )
        lr = self.leg_rom(L)
        rr = self.leg_rom(R)
        asymmetry = round_half_up(abs(lr.total_rom - rr.total_rom), 1)
        average = round_half_up(0.5 * (lr.total_rom + rr.total_rom), 1)
        confidence = 0.5 * (lr.confidence + rr.confidence)
        return ROMAnalysis(
            left=lr,
            right=rr,
            asymmetry=asymmetry,
            average_rom=average,
            data_quality=self.classify_quality(confidence, asymmetry),
            confidence=round_half_up(confidence, 2),
        )

    def recommendations(self, analysis: ROMAnalysis) -> List[str]:
        p = self.profile
        out: List[str] = []
        if p.rom_low is not None and analysis.average_rom < p.rom_low:
            out.append(p.low_msg)
        elif p.rom_high is not None and analysis.average_rom > p.rom_high:
            out.append(p.high_msg)
        if analysis.asymmetry >= p.asym_high:
            out.append(p.asym_high_msg)
        elif analysis.asymmetry >= p.asym_moderate:
            out.append(p.asym_moderate_msg)
        if analysis.data_quality == "poor":
            out.append(POOR_QUALITY_MSG)
        return out

    def rom_summary(self, left, right, analysis: Optional[ROMAnalysis] = None) -> Dict[str, object]:
        if analysis is None:
            analysis = self.bilateral_rom(left, right)
        details = {}
        for side, angles, res in (("left", left, analysis.left), ("right", right, analysis.right)):
            d = res.to_dict()
            d["peaks"] = [pk.to_dict() for pk in self.find_peaks(angles, res.anatomical_zero)]
            details[side] = d
        return {
            "joint": self.profile.joint,
            "mode": self.config.mode,
            "analysis": analysis.to_dict(),
            "symmetry_index": symmetry_index(left, right),
            "details": details,
            "recommendations": self.recommendations(analysis),
        }
