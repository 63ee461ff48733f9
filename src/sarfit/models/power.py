from __future__ import annotations

import numpy as np

from ..model import ModelSpec
from .common import loga_guess, power_guess

# --- power law and its extensions -------------------------------------------
# None of these families has a horizontal asymptote.


def power_func(A, c=1.0, z=0.25):
    return c * A**z


def power(*, name: str = "power") -> ModelSpec:
    """Arrhenius power model S = c*A^z, seeded from a log-log regression."""

    def init_power(A, S, g):
        c, z = power_guess(A, S)
        g.c = c
        g.z = z

    return (
        ModelSpec.from_function(
            power_func, name=name, formula="S == c*A^z", long_name="Power"
        )
        .bound(c=(0.0, None), z=(0.0, None))
        .with_guesser(init_power)
    )


def power_rossberg_func(A, f=0.0, c=1.0, z=0.25):
    return f + c * A**z


def power_rossberg(*, name: str = "powerR") -> ModelSpec:
    """Power model with an additive offset, S = f + c*A^z."""

    def init_power_r(A, S, g):
        c, z = power_guess(A, S)
        g.f = 0.0
        g.c = c
        g.z = z

    return (
        ModelSpec.from_function(
            power_rossberg_func,
            name=name,
            formula="S == f + c*A^z",
            long_name="PowerR",
        )
        .bound(c=(0.0, None), z=(0.0, None))
        .with_guesser(init_power_r)
    )


def epm1_func(A, c=1.0, z=0.25, d=0.0):
    return c * A ** (z * A ** (-d))


def epm2_func(A, c=1.0, z=0.25, d=0.0):
    return c * A ** (z - (d / A))


def p1_func(A, c=1.0, z=0.25, d=0.0):
    return c * A**z * np.exp(-d * A)


def p2_func(A, c=1.0, z=0.25, d=0.0):
    return c * A**z * np.exp(-d / A)


def _init_extended_power(A, S, g):
    """Start extended power models at the plain power fit (d = 0)."""
    c, z = power_guess(A, S)
    g.c = c
    g.z = z
    g.d = 0.0


def _extended_power(func, *, name: str, formula: str, long_name: str) -> ModelSpec:
    return (
        ModelSpec.from_function(func, name=name, formula=formula, long_name=long_name)
        .bound(c=(0.0, None), z=(0.0, None))
        .with_guesser(_init_extended_power)
    )


def epm1(*, name: str = "epm1") -> ModelSpec:
    """Extended power model 1, S = c*A^(z*A^-d)."""
    return _extended_power(
        epm1_func,
        name=name,
        formula="S == c*A^(z*A^-d)",
        long_name="Extended Power model 1",
    )


def epm2(*, name: str = "epm2") -> ModelSpec:
    """Extended power model 2, S = c*A^(z-(d/A))."""
    return _extended_power(
        epm2_func,
        name=name,
        formula="S == c*A^(z-(d/A))",
        long_name="Extended Power model 2",
    )


def p1(*, name: str = "p1") -> ModelSpec:
    """Persistence function 1, S = c*A^z*exp(-d*A)."""
    return _extended_power(
        p1_func,
        name=name,
        formula="S == c*A^z * exp(-d*A)",
        long_name="Persistence function 1",
    )


def p2(*, name: str = "p2") -> ModelSpec:
    """Persistence function 2, S = c*A^z*exp(-d/A)."""
    return _extended_power(
        p2_func,
        name=name,
        formula="S == c*A^z * exp(-d/A)",
        long_name="Persistence function 2",
    )


# --- logarithmic families ----------------------------------------------------


def loga_func(A, c=0.0, z=1.0):
    return c + z * np.log(A)


def loga(*, name: str = "loga") -> ModelSpec:
    """Gleason's logarithmic model S = c + z*log(A)."""

    def init_loga(A, S, g):
        c, z = loga_guess(A, S)
        g.c = c
        g.z = z

    return ModelSpec.from_function(
        loga_func, name=name, formula="S == c+z*log(A)", long_name="Logarithmic"
    ).with_guesser(init_loga)


def koba_func(A, c=1.0, z=1.0):
    return c * np.log(1.0 + A / z)


def koba(*, name: str = "koba") -> ModelSpec:
    """Kobayashi model S = c*log(1 + A/z).

    For A >> z this is c*log(A) - c*log(z), so the logarithmic fit seeds it.
    """

    def init_koba(A, S, g):
        intercept, slope = loga_guess(A, S)
        if slope > 0:
            g.c = slope
            g.z = max(float(np.exp(-intercept / slope)), 1e-8)
        else:
            a_mid = float(np.median(A))
            g.z = a_mid
            g.c = float(np.max(S)) / float(np.log1p(np.max(A) / a_mid))

    return (
        ModelSpec.from_function(
            koba_func, name=name, formula="S == c*log(1+A/z)", long_name="Kobayashi"
        )
        .bound(c=(0.0, None), z=(0.0, None))
        .with_guesser(init_koba)
    )
