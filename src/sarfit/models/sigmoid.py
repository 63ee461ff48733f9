from __future__ import annotations

import numpy as np

from ..model import ModelSpec
from .common import TINY, mid_point, upper_guess

# --- sigmoid families -------------------------------------------------------
# Inflection seeded near the median area, upper asymptote above max(S).


def _asymptote_d(p):
    return p["d"]


def gompertz_func(A, d=1.0, z=1.0, c=1.0):
    return d * np.exp(-np.exp(-z * (A - c)))


def gompertz(*, name: str = "gompertz") -> ModelSpec:
    """Gompertz curve S = d*exp(-exp(-z*(A - c)))."""

    def init_gompertz(A, S, g):
        a_mid, _ = mid_point(A, S)
        g.d = upper_guess(S)
        g.c = a_mid
        g.z = 1.0 / max(a_mid, TINY)

    return (
        ModelSpec.from_function(
            gompertz_func,
            name=name,
            formula="S == d*exp(-exp(-z*(A-c)))",
            long_name="Gompertz",
        )
        .bound(d=(0.0, None), z=(0.0, None))
        .with_guesser(init_gompertz)
        .with_asymptote(_asymptote_d)
    )


def weibull4_func(A, d=1.0, c=0.01, z=1.0, f=1.0):
    return d * (1.0 - np.exp(-c * A**z)) ** f


def weibull4(*, name: str = "weibull4") -> ModelSpec:
    """Cumulative Weibull with four parameters, S = d*(1 - exp(-c*A^z))^f."""

    def init_weibull4(A, S, g):
        d = upper_guess(S)
        a_mid, s_mid = mid_point(A, S)
        frac = min(s_mid / d, 1.0 - 1e-6)
        g.d = d
        g.c = max(-np.log1p(-frac) / max(a_mid, TINY), TINY)
        g.z = 1.0
        g.f = 1.0

    return (
        ModelSpec.from_function(
            weibull4_func,
            name=name,
            formula="S == d * (1 - exp(-c*A^z))^f",
            long_name="Cumulative Weibull 4 par.",
        )
        .bound(d=(0.0, None), c=(0.0, None), z=(0.0, None), f=(0.0, None))
        .with_guesser(init_weibull4)
        .with_asymptote(_asymptote_d)
    )


def betap_func(A, d=1.0, c=1.0, z=1.0, f=1.0):
    return d * (1.0 - (1.0 + (A / c) ** z) ** (-f))


def betap(*, name: str = "betap") -> ModelSpec:
    """Beta-P cumulative S = d*(1 - (1 + (A/c)^z)^-f)."""

    def init_betap(A, S, g):
        a_mid, _ = mid_point(A, S)
        g.d = upper_guess(S)
        g.c = max(a_mid, TINY)
        g.z = 1.0
        g.f = 1.0

    return (
        ModelSpec.from_function(
            betap_func,
            name=name,
            formula="S == d*(1-(1+(A/c)^z)^-f)",
            long_name="Beta-P cumulative",
        )
        .bound(d=(0.0, None), c=(0.0, None), z=(0.0, None), f=(0.0, None))
        .with_guesser(init_betap)
        .with_asymptote(_asymptote_d)
    )


def heleg_func(A, c=1.0, f=1.0, z=1.0):
    return c / (f + A ** (-z))


def heleg(*, name: str = "heleg") -> ModelSpec:
    """Heleg(Logistic) S = c/(f + A^-z); asymptote c/f."""

    def init_heleg(A, S, g):
        asym = upper_guess(S)
        a_mid, s_mid = mid_point(A, S)
        s_mid = min(s_mid, 0.99 * asym)
        c = s_mid / (max(a_mid, TINY) * (1.0 - s_mid / asym))
        g.z = 1.0
        g.c = c
        g.f = c / asym

    def asymptote(p):
        return p["c"] / p["f"] if p["f"] > 0 else None

    return (
        ModelSpec.from_function(
            heleg_func,
            name=name,
            formula="S == c/(f + A^(-z))",
            long_name="Heleg(Logistic)",
        )
        .bound(c=(0.0, None), f=(0.0, None), z=(0.0, None))
        .with_guesser(init_heleg)
        .with_asymptote(asymptote)
    )


def logistic_func(A, d=1.0, z=1.0, f=0.0):
    return d / (1.0 + np.exp(-z * A + f))


def logistic(*, name: str = "logistic") -> ModelSpec:
    """Logistic curve S = d/(1 + exp(-z*A + f))."""

    def init_logistic(A, S, g):
        a_mid, _ = mid_point(A, S)
        span = float(np.ptp(A))
        z = 4.0 / span if span > 0 else 1.0
        g.d = upper_guess(S)
        g.z = z
        g.f = z * a_mid

    return (
        ModelSpec.from_function(
            logistic_func,
            name=name,
            formula="S == d/(1 + exp(-z*A + f))",
            long_name="Logistic(Standard)",
        )
        .bound(d=(0.0, None), z=(0.0, None))
        .with_guesser(init_logistic)
        .with_asymptote(_asymptote_d)
    )
