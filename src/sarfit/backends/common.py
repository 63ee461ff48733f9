from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Protocol, Tuple

import numpy as np


@dataclass(frozen=True)
class FitAttempt:
    """Outcome of one optimisation run from one starting vector."""

    start: np.ndarray  # starting vector, shape (k,)
    theta: np.ndarray  # final parameters, shape (k,)
    rss: float = float("inf")
    converged: bool = False
    message: str = ""
    nfev: int = 0


class Backend(Protocol):
    """Backend protocol: run one attempt from one start."""

    name: str

    def fit_one(
        self,
        *,
        model: Any,
        data: Any,
        p0: np.ndarray,
        bounds: Tuple[np.ndarray, np.ndarray],
        options: Dict[str, Any],
    ) -> FitAttempt: ...


def finish_attempt(
    model: Any,
    data: Any,
    p0: np.ndarray,
    theta: np.ndarray,
    *,
    success: bool,
    message: str,
    nfev: int = 0,
) -> FitAttempt:
    """Score a backend's raw result and decide whether it converged.

    Converged requires optimiser success, finite parameters and RSS, and
    parameters inside the family's feasible region.
    """
    theta = np.asarray(theta, dtype=float).reshape(-1)
    finite = bool(np.all(np.isfinite(theta)))
    rss = model.residual_sum_of_squares(theta, data) if finite else float("inf")
    converged = bool(
        success and finite and np.isfinite(rss) and model.constraint_satisfied(theta)
    )
    if success and not converged:
        message = (message + "; " if message else "") + "non-finite or infeasible result"
    return FitAttempt(
        start=np.asarray(p0, dtype=float).copy(),
        theta=theta,
        rss=float(rss),
        converged=converged,
        message=message,
        nfev=int(nfev),
    )
