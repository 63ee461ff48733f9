from __future__ import annotations

import numpy as np

from ..model import ModelSpec
from .common import TINY, mid_point, upper_guess

# --- convex-to-asymptote families ---------------------------------------------
# Each family seeds its asymptote just above the largest observed richness and
# solves for the remaining rate parameter through the median observation.


def _asymptote_d(p):
    return p["d"]


def _negexpo_rate(A, S, d):
    a_mid, s_mid = mid_point(A, S)
    frac = min(s_mid / d, 1.0 - 1e-6)
    return max(-np.log1p(-frac) / max(a_mid, TINY), TINY)


def monod_func(A, d=1.0, c=1.0):
    return d / (1.0 + c * A ** (-1.0))


def monod(*, name: str = "monod") -> ModelSpec:
    """Monod model S = d/(1 + c*A^-1)."""

    def init_monod(A, S, g):
        d = upper_guess(S)
        a_mid, s_mid = mid_point(A, S)
        g.d = d
        g.c = max(a_mid * (d / s_mid - 1.0), TINY)

    return (
        ModelSpec.from_function(
            monod_func, name=name, formula="S == d/(1+c*A^(-1))", long_name="Monod"
        )
        .bound(d=(0.0, None), c=(0.0, None))
        .with_guesser(init_monod)
        .with_asymptote(_asymptote_d)
    )


def negexpo_func(A, d=1.0, z=0.01):
    return d * (1.0 - np.exp(-z * A))


def negexpo(*, name: str = "negexpo") -> ModelSpec:
    """Negative exponential S = d*(1 - exp(-z*A))."""

    def init_negexpo(A, S, g):
        d = upper_guess(S)
        g.d = d
        g.z = _negexpo_rate(A, S, d)

    return (
        ModelSpec.from_function(
            negexpo_func,
            name=name,
            formula="S == d*(1-exp(-z*A))",
            long_name="Negative exponential",
        )
        .bound(d=(0.0, None), z=(0.0, None))
        .with_guesser(init_negexpo)
        .with_asymptote(_asymptote_d)
    )


def chapman_func(A, d=1.0, z=0.01, c=1.0):
    return d * (1.0 - np.exp(-z * A)) ** c


def chapman(*, name: str = "chapman") -> ModelSpec:
    """Chapman-Richards S = d*(1 - exp(-z*A))^c."""

    def init_chapman(A, S, g):
        d = upper_guess(S)
        g.d = d
        g.z = _negexpo_rate(A, S, d)
        g.c = 1.0

    return (
        ModelSpec.from_function(
            chapman_func,
            name=name,
            formula="S == d * (1 - exp(-z*A)^c)",
            long_name="Chapman Richards",
        )
        .bound(d=(0.0, None), z=(0.0, None), c=(0.0, None))
        .with_guesser(init_chapman)
        .with_asymptote(_asymptote_d)
    )


def weibull3_func(A, d=1.0, c=0.01, z=1.0):
    return d * (1.0 - np.exp(-c * A**z))


def weibull3(*, name: str = "weibull3") -> ModelSpec:
    """Cumulative Weibull with three parameters, S = d*(1 - exp(-c*A^z))."""

    def init_weibull3(A, S, g):
        d = upper_guess(S)
        g.d = d
        g.c = _negexpo_rate(A, S, d)
        g.z = 1.0

    return (
        ModelSpec.from_function(
            weibull3_func,
            name=name,
            formula="S == d(1 - exp(-c*A^z))",
            long_name="Cumulative Weibull 3 par.",
        )
        .bound(d=(0.0, None), c=(0.0, None), z=(0.0, None))
        .with_guesser(init_weibull3)
        .with_asymptote(_asymptote_d)
    )


def asymp_func(A, d=1.0, c=1.0, z=0.5):
    return d - c * z**A


def asymp(*, name: str = "asymp") -> ModelSpec:
    """Asymptotic regression S = d - c*z^A, with 0 <= z <= 1."""

    def init_asymp(A, S, g):
        d = upper_guess(S)
        c = max(d - float(np.min(S)), TINY)
        a_mid, s_mid = mid_point(A, S)
        ratio = min(max((d - s_mid) / c, TINY), 1.0 - 1e-6)
        g.d = d
        g.c = c
        g.z = float(np.clip(ratio ** (1.0 / max(a_mid, TINY)), TINY, 1.0 - 1e-9))

    def asymptote(p):
        return p["d"] if p["z"] < 1.0 else None

    return (
        ModelSpec.from_function(
            asymp_func, name=name, formula="S == d - c*z^A", long_name="Asymptotic regression"
        )
        .bound(d=(0.0, None), c=(0.0, None), z=(0.0, 1.0))
        .with_guesser(init_asymp)
        .with_asymptote(asymptote)
    )


def ratio_func(A, c=0.0, z=1.0, d=0.01):
    return (c + z * A) / (1.0 + d * A)


def ratio(*, name: str = "ratio") -> ModelSpec:
    """Rational function S = (c + z*A)/(1 + d*A); asymptote z/d."""

    def init_ratio(A, S, g):
        d = 1.0 / max(float(np.median(A)), TINY)
        g.d = d
        g.z = upper_guess(S) * d
        g.c = float(np.min(S))

    def asymptote(p):
        return p["z"] / p["d"] if p["d"] > 0 else None

    return (
        ModelSpec.from_function(
            ratio_func,
            name=name,
            formula="S == (c + z*A)/(1+d*A)",
            long_name="Rational function",
        )
        .bound(z=(0.0, None), d=(0.0, None))
        .with_guesser(init_ratio)
        .with_asymptote(asymptote)
    )


def mmf_func(A, d=1.0, c=1.0, z=1.0):
    return d / (1.0 + c * A ** (-z))


def mmf(*, name: str = "mmf") -> ModelSpec:
    """Morgan-Mercer-Flodin S = d/(1 + c*A^-z)."""

    def init_mmf(A, S, g):
        d = upper_guess(S)
        a_mid, s_mid = mid_point(A, S)
        g.d = d
        g.z = 1.0
        g.c = max((d / s_mid - 1.0) * a_mid, TINY)

    return (
        ModelSpec.from_function(
            mmf_func, name=name, formula="S == d/(1+c*A^(-z))", long_name="MMF"
        )
        .bound(d=(0.0, None), c=(0.0, None), z=(0.0, None))
        .with_guesser(init_mmf)
        .with_asymptote(_asymptote_d)
    )
