from __future__ import annotations

import inspect
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple

import numpy as np


def readonly(arr: Any) -> np.ndarray:
    """Return a float copy of `arr` that cannot be written to."""
    out = np.array(arr, dtype=float, copy=True)
    out.setflags(write=False)
    return out


def frozen_mapping(d: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
    """Read-only view of a private copy of `d`."""
    return MappingProxyType(dict(d or {}))


def van_der_corput(k: int, base: int = 2) -> float:
    """k-th element of the base-`base` van der Corput sequence in [0, 1)."""
    k = int(k)
    out = 0.0
    denom = 1.0
    while k > 0:
        k, digit = divmod(k, base)
        denom *= base
        out += digit / denom
    return out


def nested_exponents(n: int, span: float) -> np.ndarray:
    """First n exponents of a nested sequence in (-span, span), starting at 0.

    The first n entries are always a prefix of the first n+1, so grids built
    from them grow by inclusion.
    """
    n = int(n)
    if n < 1:
        raise ValueError("n must be >= 1.")
    u = np.array([van_der_corput(k + 1) for k in range(n)], dtype=float)
    return float(span) * (2.0 * u - 1.0)


def numerical_jacobian(
    func: Callable[[np.ndarray], np.ndarray],
    theta: np.ndarray,
    bounds: Optional[Tuple[np.ndarray, np.ndarray]] = None,
    step: float = 1e-6,
) -> np.ndarray:
    """Finite-difference Jacobian of a vector function, shape (N, P).

    Uses central differences, falling back to one-sided differences where a
    step would leave the bounds.
    """
    theta = np.asarray(theta, dtype=float)
    npar = int(theta.shape[0])
    f0 = np.asarray(func(theta), dtype=float).reshape(-1)
    jac = np.empty((f0.shape[0], npar), dtype=float)

    if bounds is None:
        lo = np.full(npar, -np.inf)
        hi = np.full(npar, np.inf)
    else:
        lo = np.asarray(bounds[0], dtype=float)
        hi = np.asarray(bounds[1], dtype=float)

    for j in range(npar):
        h = step * max(abs(theta[j]), 1e-3)
        up_ok = theta[j] + h <= hi[j]
        down_ok = theta[j] - h >= lo[j]
        e = np.zeros(npar, dtype=float)
        e[j] = h
        if up_ok and down_ok:
            fp = np.asarray(func(theta + e), dtype=float).reshape(-1)
            fm = np.asarray(func(theta - e), dtype=float).reshape(-1)
            jac[:, j] = (fp - fm) / (2.0 * h)
        elif up_ok:
            fp = np.asarray(func(theta + e), dtype=float).reshape(-1)
            jac[:, j] = (fp - f0) / h
        else:
            fm = np.asarray(func(theta - e), dtype=float).reshape(-1)
            jac[:, j] = (f0 - fm) / h
    return jac


def infer_param_names(func: Callable[..., Any]) -> Tuple[str, ...]:
    """Infer parameter names from a function signature.

    Conventions:
    - first arg is the area array
    - remaining positional/keyword parameters are fit parameters
    - no *args/**kwargs
    """
    sig = inspect.signature(func)
    params = list(sig.parameters.values())

    if len(params) < 2:
        raise TypeError("Model function must have at least (A, p1, ...).")

    bad_kinds = {inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD}
    for p in params:
        if p.kind in bad_kinds:
            raise TypeError("*args/**kwargs are not supported in model functions.")

    names = [p.name for p in params[1:]]
    if len(set(names)) != len(names):
        raise TypeError("Duplicate parameter names in function signature.")
    return tuple(names)
