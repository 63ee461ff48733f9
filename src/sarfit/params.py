from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

try:
    import uncertainties
except Exception:  # pragma: no cover - optional at import time
    uncertainties = None


__all__ = [
    "ParameterSpec",
    "Coefficient",
    "GuessState",
    "correlated_coefficients",
]


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    bounds: Tuple[Optional[float], Optional[float]] = (None, None)
    # Used when the family's guesser leaves the parameter unset
    guess: Optional[float] = None

    @property
    def lower(self) -> float:
        lo = self.bounds[0]
        return -np.inf if lo is None else float(lo)

    @property
    def upper(self) -> float:
        hi = self.bounds[1]
        return np.inf if hi is None else float(hi)

    @property
    def sign_free(self) -> bool:
        return self.lower < 0.0 < self.upper

    def contains(self, value: float, *, strict: bool = False) -> bool:
        """Return True if value lies within the bounds (interior if strict)."""
        v = float(value)
        if not np.isfinite(v):
            return False
        if strict:
            return self.lower < v < self.upper
        return self.lower <= v <= self.upper

    def clip(self, value: float) -> float:
        return float(min(max(float(value), self.lower), self.upper))


@dataclass(frozen=True)
class Coefficient:
    """One row of a fitted model's coefficient table.

    Entries that cannot be computed (too few residual degrees of freedom,
    singular curvature) are None.
    """

    name: str
    estimate: float
    stderr: Optional[float] = None
    t_value: Optional[float] = None
    p_value: Optional[float] = None
    ci_low: Optional[float] = None
    ci_high: Optional[float] = None
    _u: Any = field(default=None, repr=False, compare=False)

    @property
    def u(self):
        """Return an uncertainties ufloat, correlated with the other coefficients."""
        if self.stderr is None:
            raise ValueError(f"No stderr available for parameter {self.name!r}.")
        if uncertainties is None:
            raise RuntimeError("uncertainties package is not available.")
        if self._u is not None:
            return self._u
        return uncertainties.ufloat(self.estimate, self.stderr)


def correlated_coefficients(
    names: Sequence[str], values: Sequence[float], cov: Optional[np.ndarray]
) -> Dict[str, Any]:
    """Build correlated ufloats for the given parameters, or {} if impossible."""
    if uncertainties is None or cov is None:
        return {}
    cov_arr = np.asarray(cov, dtype=float)
    if cov_arr.shape != (len(names), len(names)) or not np.all(np.isfinite(cov_arr)):
        return {}
    try:
        corr = uncertainties.correlated_values([float(v) for v in values], cov_arr)
    except Exception:
        return {}
    return dict(zip(names, corr))


class GuessState:
    """Scratch pad a family's guessers fill with starting values.

    Guessers see the observed area and richness and assign by attribute,
    e.g. ``g.d = richness.max()`` for an asymptote or ``g.z = 0.25`` for an
    exponent. A later guesser can leave earlier values alone by checking
    ``g.is_unset("d")`` first.
    """

    __slots__ = ("_values",)

    def __init__(self):
        object.__setattr__(self, "_values", {})

    def __getattr__(self, name: str) -> Any:
        if name == "_values":
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"No guess for parameter {name!r}.") from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._values[name] = value

    def is_unset(self, name: str) -> bool:
        return name not in self._values

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)
