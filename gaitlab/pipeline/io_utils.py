from __future__ import annotations
import io, re
import logging
from typing import Dict, Optional
import numpy as np
import pandas as pd
from ..config.constants import (
    ANGLE_CANDS,
    CONTACT_CANDS,
    FRAME_CANDS,
    JOINTS,
    LEGS,
    TIME_CANDS,
)
from ..errors import ValidationError
from .cycles import GaitRecording

__all__ = [
    "read_angles_bytes",
    "sanitize_cols",
    "pick_col",
    "find_col",
    "recording_from_frame",
]

logger = logging.getLogger(__name__)

_DELIMS = [",", ";", "\t", "|"]
_HEADER_KEYWORDS = (
    "hip",
    "knee",
    "ankle",
    "contact",
    "stance",
    "time",
    "frame",
    "left",
    "right",
)


def sanitize_cols(cols):
    sc = []
    for c in cols:
        s = str(c).strip()
        s = re.sub(r"[^0-9A-Za-z]+", "_", s)
        s = re.sub(r"_+", "_", s)
        sc.append(s.strip("_").lower())
    return sc


def read_angles_bytes(b: bytes) -> pd.DataFrame:
    """Parse an uploaded joint-angle table, skipping any preamble before the header row."""
    text = b.decode("utf-8", errors="ignore")
    lines = text.splitlines()

    def _looks_like_header(s: str) -> bool:
        s0 = s.strip()
        if not s0:
            return False
        if ":" in s0:
            return False
        if not any(d in s0 for d in _DELIMS):
            return False
        low = s0.lower()
        hits = sum(1 for kw in _HEADER_KEYWORDS if kw in low)
        return hits >= 2

    header_i = None
    for i, line in enumerate(lines[:400]):
        if _looks_like_header(line):
            header_i = i
            break
    if header_i is None:
        header_i = 0

    payload = "\n".join(lines[header_i:])
    if not payload.strip():
        raise ValidationError("Empty CSV payload")

    df = None
    try:
        df = pd.read_csv(io.StringIO(payload), low_memory=False)
    except (pd.errors.ParserError, ValueError):
        df = None
    if df is None:
        try:
            df = pd.read_csv(
                io.StringIO(payload), engine="python", sep=None, on_bad_lines="skip"
            )
        except (pd.errors.ParserError, ValueError, TypeError):
            df = None
    if df is None:
        # Last-resort: detect probable delimiter by most frequent in the first non-empty line
        rows = [r for r in payload.splitlines() if r.strip()]
        delim = max(_DELIMS, key=lambda d: rows[0].count(d))
        target_n = rows[0].count(delim) + 1
        filtered = [r for r in rows if (r.count(delim) + 1) == target_n]
        df = pd.read_csv(
            io.StringIO("\n".join(filtered)),
            engine="python",
            sep=delim,
            on_bad_lines="skip",
        )

    # Single-column parse usually means the delimiter was missed
    if df.shape[1] < 2:
        best_df = df
        for sep in _DELIMS[1:]:
            try:
                cand = pd.read_csv(
                    io.StringIO(payload), engine="python", sep=sep, on_bad_lines="skip"
                )
            except (pd.errors.ParserError, ValueError):
                continue
            if cand.shape[1] > best_df.shape[1]:
                best_df = cand
        df = best_df

    df.columns = sanitize_cols(df.columns)
    return df


def pick_col(df: pd.DataFrame, candidates: list[str]) -> str:
    for c in candidates:
        if c in df.columns:
            return c
    base = ["".join(filter(str.isalpha, c)) for c in df.columns]
    for c in candidates:
        token = "".join(filter(str.isalpha, c))
        for bidx, b in enumerate(base):
            if token and token in b:
                return df.columns[bidx]
    raise KeyError(f"Missing any of {candidates}")


def find_col(df: pd.DataFrame, candidates: list[str]) -> Optional[str]:
    try:
        return pick_col(df, candidates)
    except KeyError:
        return None


def _contact_flags(col: pd.Series) -> np.ndarray:
    if col.dtype == bool:
        return col.to_numpy(dtype=bool)
    if col.dtype == object:
        low = col.astype(str).str.strip().str.lower()
        return low.isin(["1", "true", "yes", "y", "on", "stance", "contact"]).to_numpy()
    v = pd.to_numeric(col, errors="coerce").to_numpy(dtype=float)
    return np.nan_to_num(v, nan=0.0) > 0.5


def recording_from_frame(df: pd.DataFrame, frame_rate: float) -> GaitRecording:
    """Build a recording from a sanitized angle table.

    Each joint is taken when both its left and right columns exist; at least one
    joint and both foot-contact columns are required.
    """
    angles: Dict[str, Dict[str, np.ndarray]] = {}
    for joint in JOINTS:
        cols = {leg: find_col(df, ANGLE_CANDS[(joint, leg)]) for leg in LEGS}
        if all(cols.values()):
            angles[joint] = {
                leg: pd.to_numeric(df[c], errors="coerce").to_numpy(dtype=float)
                for leg, c in cols.items()
            }
    if not angles:
        raise ValidationError(
            f"No bilateral joint-angle columns found in {list(df.columns)}"
        )

    contacts: Dict[str, np.ndarray] = {}
    for leg in LEGS:
        c = find_col(df, CONTACT_CANDS[leg])
        if c is None:
            raise ValidationError(f"Missing {leg} foot-contact column")
        contacts[leg] = _contact_flags(df[c])

    time = None
    t_col = find_col(df, TIME_CANDS)
    if t_col is not None:
        t_raw = pd.to_numeric(df[t_col], errors="coerce").to_numpy(dtype=float)
        if t_raw.size and np.all(np.isfinite(t_raw)):
            time = t_raw - t_raw[0]
    if time is None:
        f_col = find_col(df, FRAME_CANDS)
        if f_col is not None:
            f_raw = pd.to_numeric(df[f_col], errors="coerce").to_numpy(dtype=float)
            if f_raw.size and np.all(np.isfinite(f_raw)):
                time = (f_raw - f_raw[0]) / float(frame_rate)
    logger.info(
        "Loaded %d frames, joints=%s, time from %s",
        len(df), list(angles), t_col or "frame index",
    )
    return GaitRecording(frame_rate=frame_rate, angles=angles, contacts=contacts, time=time)
