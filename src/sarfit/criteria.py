"""Information criteria, goodness of fit and the coefficient table."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Optional, Tuple

import numpy as np
from scipy import stats

from .params import Coefficient, correlated_coefficients
from .util import numerical_jacobian


@dataclass(frozen=True)
class Criteria:
    """Log-likelihood based criteria for one fit (None where undefined)."""

    loglik: float
    aic: float
    aicc: Optional[float]
    bic: float


def log_likelihood(rss: float, n: int) -> float:
    """Gaussian log-likelihood at the ML error variance RSS/n."""
    with np.errstate(divide="ignore"):
        log_rss = float(np.log(rss))
    return -n * (math.log(2.0 * math.pi) + 1.0 - math.log(n) + log_rss) / 2.0


def information_criteria(rss: float, n: int, P: int) -> Criteria:
    """AIC, AICc and BIC for a least-squares fit with P parameters.

    P counts the curve parameters plus the error variance. AICc is None when
    n - P - 1 <= 0. A perfect fit (rss == 0) gives -inf criteria.
    """
    val = log_likelihood(rss, n)
    aic = 2.0 * P - 2.0 * val
    denom = n - P - 1
    aicc = None if denom <= 0 else -2.0 * val + 2.0 * P * n / denom
    bic = -2.0 * val + P * math.log(n)
    return Criteria(loglik=val, aic=aic, aicc=aicc, bic=bic)


def r_squared(rss: float, tss: float, n: int, P: int) -> Tuple[Optional[float], Optional[float]]:
    """(R2, adjusted R2); both None when the richness values are all identical."""
    if tss == 0.0:
        return None, None
    r2 = 1.0 - rss / tss
    r2a = None if n - P <= 0 else 1.0 - (n - 1) * rss / ((n - P) * tss)
    return r2, r2a


def covariance(model: Any, theta: np.ndarray, area: np.ndarray, rss: float) -> Optional[np.ndarray]:
    """Parameter covariance s^2 * pinv(J^T J) at the optimum, or None.

    J is the numerical Jacobian of the fitted values; s^2 = rss / (n - k).
    """
    theta = np.asarray(theta, dtype=float)
    n = int(np.asarray(area).shape[0])
    k = int(theta.shape[0])
    if n <= k or not np.isfinite(rss):
        return None

    jac = numerical_jacobian(
        lambda t: model.evaluate(t, area), theta, bounds=model.bounds()
    )
    if not np.all(np.isfinite(jac)):
        return None
    s2 = rss / (n - k)
    try:
        cov = s2 * np.linalg.pinv(jac.T @ jac)
    except np.linalg.LinAlgError:
        return None
    if not np.all(np.isfinite(cov)):
        return None
    return 0.5 * (cov + cov.T)


def coefficient_table(
    names: Tuple[str, ...],
    theta: np.ndarray,
    cov: Optional[np.ndarray],
    n: int,
    conf_level: float = 0.95,
) -> Tuple[Coefficient, ...]:
    """Estimate, std. error, t, two-sided p and CI for every parameter."""
    theta = np.asarray(theta, dtype=float)
    k = int(theta.shape[0])
    df = n - k
    ucoefs = correlated_coefficients(names, theta, cov)

    tq = None
    if df > 0:
        tq = float(stats.t.ppf(0.5 * (1.0 + conf_level), df))

    rows = []
    for i, name in enumerate(names):
        est = float(theta[i])
        se = t_val = p_val = lo = hi = None
        if cov is not None and df > 0:
            var = float(cov[i, i])
            if np.isfinite(var) and var >= 0.0:
                se = math.sqrt(var)
                lo = est - tq * se
                hi = est + tq * se
                if se > 0.0:
                    t_val = est / se
                    p_val = float(2.0 * stats.t.sf(abs(t_val), df))
        rows.append(
            Coefficient(
                name=name,
                estimate=est,
                stderr=se,
                t_value=t_val,
                p_value=p_val,
                ci_low=lo,
                ci_high=hi,
                _u=ucoefs.get(name),
            )
        )
    return tuple(rows)
