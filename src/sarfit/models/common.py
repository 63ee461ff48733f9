from __future__ import annotations

from typing import Tuple

import numpy as np

TINY = 1e-12


def power_guess(area: np.ndarray, richness: np.ndarray) -> Tuple[float, float]:
    """(c, z) from a log-log regression over the strictly positive richness values."""
    a = np.asarray(area, dtype=float)
    s = np.asarray(richness, dtype=float)
    mask = s > 0
    if mask.sum() >= 2 and np.ptp(np.log(a[mask])) > 0:
        z, logc = np.polyfit(np.log(a[mask]), np.log(s[mask]), 1)
        return float(np.exp(logc)), float(z)
    return float(max(np.mean(s), 1.0)), 0.25


def loga_guess(area: np.ndarray, richness: np.ndarray) -> Tuple[float, float]:
    """(intercept, slope) of richness regressed on log(area)."""
    la = np.log(np.asarray(area, dtype=float))
    s = np.asarray(richness, dtype=float)
    if np.ptp(la) > 0:
        slope, intercept = np.polyfit(la, s, 1)
        return float(intercept), float(slope)
    return float(np.mean(s)), 0.0


def upper_guess(richness: np.ndarray) -> float:
    """Asymptote seed slightly above the largest observed richness."""
    smax = float(np.max(richness))
    return 1.2 * smax if smax > 0 else 1.0


def mid_point(area: np.ndarray, richness: np.ndarray) -> Tuple[float, float]:
    """(median area, median richness), the latter kept away from zero."""
    a_mid = float(np.median(area))
    s_mid = float(np.median(richness))
    if s_mid <= 0:
        s_mid = max(0.5 * float(np.mean(richness)), TINY)
    return a_mid, s_mid
