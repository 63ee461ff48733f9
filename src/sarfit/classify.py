"""Advisory validity flags and curve-shape classification of a fitted model."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

SHAPES = ("linear", "convex", "concave", "asymptotic", "sigmoid", "unclassifiable")

N_SHAPE_POINTS = 256
# A second difference is curvature only above this fraction of range / n^2
CURVATURE_RTOL = 1e-3
# A curvature sign counts once this share of points carries it
SIGN_SHARE = 0.01
FLAT_RTOL = 1e-9


def neg_check(fitted: Any) -> bool:
    """True if any fitted richness value is negative."""
    return bool(np.any(np.asarray(fitted, dtype=float) < 0.0))


def asymptote_flag(model: Any, params: Any, richness: Any) -> bool:
    """True if the family's fitted asymptote lies within the observed richness range."""
    value: Optional[float] = model.asymptote_value(params)
    if value is None:
        return False
    s = np.asarray(richness, dtype=float)
    return bool(np.min(s) <= value <= np.max(s))


def observed_shape(
    model: Any, params: Any, area: Any, *, asymptote: bool = False
) -> str:
    """Classify the fitted curve over the observed area range.

    Returns one of "linear", "convex", "concave", "asymptotic", "sigmoid" or
    "unclassifiable". Concave curves are reported as "asymptotic" when the
    asymptote flag is set.
    """
    a = np.asarray(area, dtype=float)
    grid = np.linspace(float(np.min(a)), float(np.max(a)), N_SHAPE_POINTS)
    y = model.evaluate(params, grid)
    if not np.all(np.isfinite(y)):
        return "unclassifiable"

    span = float(np.ptp(y))
    if span <= FLAT_RTOL * max(1.0, abs(float(np.mean(y)))):
        return "unclassifiable"

    d2 = np.diff(y, n=2)
    threshold = CURVATURE_RTOL * span / N_SHAPE_POINTS**2
    min_count = max(1, int(np.ceil(SIGN_SHARE * d2.size)))
    pos = int(np.sum(d2 > threshold)) >= min_count
    neg = int(np.sum(d2 < -threshold)) >= min_count

    if pos and neg:
        return "sigmoid"
    if pos:
        return "convex"
    if neg:
        return "asymptotic" if asymptote else "concave"
    return "linear"
