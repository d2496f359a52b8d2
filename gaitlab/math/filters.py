from __future__ import annotations

import numpy as np
from scipy.signal import butter, sosfiltfilt

__all__ = ["lowpass"]


def _mk_sos(fc_hz: float, fs_hz: float, btype: str, order: int = 2):
    wn = max(1e-5, min(0.999, float(fc_hz) / (0.5 * float(fs_hz))))
    return butter(int(order), wn, btype=btype, output="sos")


def lowpass(x: np.ndarray, fs_hz: float, fc_hz: float, order: int = 2) -> np.ndarray:
    """Zero-phase low-pass (Butterworth SOS) along time axis.

    - x: (T,) or (T,D) joint angles in degrees
    - fc_hz: cutoff in Hz (~6 Hz keeps gait kinematics, drops frame jitter)

    Series too short for filtfilt padding are returned unchanged.
    """
    if x is None:
        return x
    X = np.asarray(x, dtype=float)
    if X.size == 0 or fs_hz <= 0 or fc_hz <= 0:
        return X.copy()
    sos = _mk_sos(fc_hz, fs_hz, btype="lowpass", order=order)
    # sosfiltfilt default padlen: 3 * (2 * len(sos) + 1 - min(zeros, poles))
    padlen = 3 * (2 * sos.shape[0] + 1)
    if X.shape[0] <= padlen:
        return X.copy()
    if X.ndim == 1:
        return sosfiltfilt(sos, X, axis=0)
    return np.vstack([sosfiltfilt(sos, X[:, j], axis=0) for j in range(X.shape[1])]).T

