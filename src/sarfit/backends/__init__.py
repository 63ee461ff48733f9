"""Optimisers a single fit attempt can run on, looked up by name."""

from __future__ import annotations

from typing import Dict

from .common import Backend, FitAttempt
from .scipy_curve_fit import ScipyCurveFitBackend
from .scipy_minimize import ScipyMinimizeBackend

_BACKENDS: Dict[str, Backend] = {
    "scipy.curve_fit": ScipyCurveFitBackend(),
    "scipy.minimize": ScipyMinimizeBackend(),
}

AVAILABLE_BACKENDS = tuple(_BACKENDS)


def get_backend(name: str) -> Backend:
    """Return the optimiser registered as `name` (see AVAILABLE_BACKENDS)."""
    if name not in _BACKENDS:
        raise ValueError(f"Unknown backend {name!r}. Available: {AVAILABLE_BACKENDS}")
    return _BACKENDS[name]


__all__ = ["Backend", "FitAttempt", "get_backend", "AVAILABLE_BACKENDS"]
