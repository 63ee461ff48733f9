"""Multi-start driver: build starting vectors, run them, keep the best."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from itertools import product
import logging
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from .backends import get_backend
from .backends.common import FitAttempt, finish_attempt
from .config import FitConfig
from .inputs import SARData
from .params import ParameterSpec
from .util import nested_exponents

logger = logging.getLogger(__name__)

# Multiplicative scalings span 10^-2 .. 10^2 around the heuristic guess.
GRID_SPAN = 2.0
SMALL_START = 1e-7
TIE_RTOL = 1e-8


@dataclass(frozen=True)
class GridOutcome:
    best: FitAttempt
    attempts_run: int
    n_converged: int
    attempts: Tuple[FitAttempt, ...] = ()


def _dedupe(values: Sequence[float]) -> List[float]:
    out: List[float] = []
    for v in values:
        if not any(v == w for w in out):
            out.append(v)
    return out


def parameter_candidates(spec: ParameterSpec, guess: float, grid_n: int) -> List[float]:
    """Candidate start values for one parameter, the heuristic guess first.

    The list for grid_n is a superset of the list for any smaller grid_n.
    """
    guess = float(guess)
    sign = -1.0 if guess < 0 else 1.0
    base = guess if guess != 0.0 else 1.0

    values = [guess, spec.clip(sign * SMALL_START)]
    for e in nested_exponents(grid_n, GRID_SPAN)[1:]:
        scaled = base * 10.0**e
        values.append(spec.clip(scaled))
        if guess == 0.0 and spec.sign_free:
            values.append(spec.clip(-scaled))
    return _dedupe([v for v in values if np.isfinite(v)])


def _candidate_levels(spec: ParameterSpec, guess: float, grid_n: int) -> List[int]:
    """Smallest grid_n at which each entry of the candidate list first appears."""
    levels: List[int] = []
    for g in range(1, grid_n + 1):
        size = len(parameter_candidates(spec, guess, g))
        levels.extend([g] * (size - len(levels)))
    return levels


def grid_starts(
    model: Any,
    data: SARData,
    *,
    grid_n: int,
    mode: str = "grid",
    max_starts: int = 100,
    seed: Optional[int] = 0,
) -> List[np.ndarray]:
    """Starting vectors for `model`; index 0 is always the heuristic start.

    mode="none" returns the heuristic start only. "grid" walks the Cartesian
    product of per-parameter candidates coarse level first, so the starts for
    a smaller grid_n come before the ones a larger grid_n adds, and keeps the
    first `max_starts`. "partial" draws a seeded random subset of at most
    `max_starts` entries from the whole product.
    """
    heuristic = model.initial_guess(data)
    if mode == "none":
        return [heuristic]
    if mode not in ("grid", "partial"):
        raise ValueError(f"Unknown grid mode {mode!r}.")

    per_param = [
        parameter_candidates(spec, g, grid_n) for spec, g in zip(model.params, heuristic)
    ]
    levels = [
        _candidate_levels(spec, g, grid_n) for spec, g in zip(model.params, heuristic)
    ]
    combos = list(product(*(range(len(c)) for c in per_param)))
    # stable: product order within a level
    combos.sort(key=lambda idx: max(lv[i] for lv, i in zip(levels, idx)))
    starts = [
        np.array([c[i] for c, i in zip(per_param, idx)], dtype=float) for idx in combos
    ]

    if len(starts) > max_starts:
        if mode == "grid":
            starts = starts[:max_starts]
        else:
            rng = np.random.default_rng(seed)
            picked = rng.choice(np.arange(1, len(starts)), size=max_starts - 1, replace=False)
            idx = [0] + sorted(int(i) for i in picked)
            starts = [starts[i] for i in idx]
        logger.debug(
            "%s: %s grid capped at %d of %d starts",
            model.name,
            mode,
            len(starts),
            len(combos),
        )
    return starts


def run_attempts(
    model: Any, data: SARData, starts: Sequence[np.ndarray], config: FitConfig
) -> List[FitAttempt]:
    """Run one backend attempt per start; results are in start order."""
    backend = get_backend(config.backend)
    bounds = model.bounds()
    options = {"maxfev": config.maxfev}

    def one(p0: np.ndarray) -> FitAttempt:
        return backend.fit_one(
            model=model, data=data, p0=p0, bounds=bounds, options=options
        )

    if config.workers > 1 and len(starts) > 1:
        with ThreadPoolExecutor(max_workers=config.workers) as executor:
            return list(executor.map(one, starts))
    return [one(p0) for p0 in starts]


def select_best(model: Any, attempts: Sequence[FitAttempt]) -> Tuple[FitAttempt, int]:
    """Return (best attempt, its index).

    Lowest RSS among converged attempts; near-ties prefer parameters strictly
    inside the bounds, then the earliest start. With nothing converged, the
    lowest finite-RSS attempt is returned (still marked not converged).
    """
    if not attempts:
        raise ValueError("No fit attempts to select from.")

    converged = [(i, a) for i, a in enumerate(attempts) if a.converged]
    if converged:
        best_rss = min(a.rss for _, a in converged)
        tol = TIE_RTOL * max(abs(best_rss), np.finfo(float).tiny)
        tied = [(i, a) for i, a in converged if a.rss - best_rss <= tol]
        for i, a in tied:
            if model.constraint_satisfied(a.theta, strict=True):
                return a, i
        return tied[0][1], tied[0][0]

    finite = [(i, a) for i, a in enumerate(attempts) if np.isfinite(a.rss)]
    if finite:
        i, a = min(finite, key=lambda ia: (ia[1].rss, ia[0]))
        return a, i
    return attempts[0], 0


def run_grid(model: Any, data: SARData, config: FitConfig) -> GridOutcome:
    """Fit `model` from every start the config asks for and keep the best."""
    if model.solver is not None:
        with np.errstate(all="ignore"):
            theta = np.asarray(model.solver(data.area, data.richness), dtype=float)
        attempt = finish_attempt(
            model, data, theta, theta, success=True, message="closed form"
        )
        logger.debug("%s: solved in closed form (rss=%g)", model.name, attempt.rss)
        return GridOutcome(
            best=attempt,
            attempts_run=1,
            n_converged=int(attempt.converged),
            attempts=(attempt,),
        )

    starts = grid_starts(
        model,
        data,
        grid_n=config.grid_n,
        mode=config.grid_start,
        max_starts=config.grid_max_starts,
        seed=config.seed,
    )
    attempts = run_attempts(model, data, starts, config)
    best, idx = select_best(model, attempts)
    n_converged = sum(1 for a in attempts if a.converged)
    logger.debug(
        "%s: %d/%d attempts converged; best start #%d (rss=%g)",
        model.name,
        n_converged,
        len(attempts),
        idx,
        best.rss,
    )
    return GridOutcome(
        best=best,
        attempts_run=len(attempts),
        n_converged=n_converged,
        attempts=tuple(attempts),
    )
