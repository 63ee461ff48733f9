from __future__ import annotations

import numpy as np

from ..model import ModelSpec


def linear_func(A, c=0.0, m=1.0):
    """Straight line S = c + m*A."""
    return c + m * A


def linear_solve(area, richness):
    """Ordinary least squares (c, m) for S = c + m*A."""
    X = np.column_stack([np.ones_like(area, dtype=float), np.asarray(area, dtype=float)])
    theta, *_ = np.linalg.lstsq(X, np.asarray(richness, dtype=float), rcond=None)
    return np.asarray(theta, dtype=float)


def linear(*, name: str = "linear") -> ModelSpec:
    """Return the linear model, solved in closed form."""

    def init_linear(A, S, g):
        c, m = linear_solve(A, S)
        g.c = c
        g.m = m

    return (
        ModelSpec.from_function(
            linear_func, name=name, formula="S == c + m*A", long_name="Linear model"
        )
        .with_guesser(init_linear)
        .with_solver(linear_solve)
    )
