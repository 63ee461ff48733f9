"""Residual diagnostics: normality and homogeneity probes.

A probe never raises on bad input; it reports status="unavailable" with the
reason instead, so a failing test cannot abort a fit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np
from scipy import stats
from statsmodels.stats.diagnostic import lilliefors

ProbeFn = Callable[[np.ndarray], Tuple[float, float]]
CorrelationFn = Callable[[np.ndarray, np.ndarray], Tuple[float, float]]


@dataclass(frozen=True)
class ProbeResult:
    test: str
    status: str  # "computed" | "unavailable" | "skipped"
    statistic: Optional[float] = None
    p_value: Optional[float] = None
    reason: str = ""

    @property
    def computed(self) -> bool:
        return self.status == "computed"

    def passed(self, alpha: float = 0.05) -> Optional[bool]:
        """True if the null hypothesis is not rejected at `alpha` (None if not computed)."""
        if not self.computed or self.p_value is None:
            return None
        return bool(self.p_value >= alpha)


def _shapiro(x: np.ndarray) -> Tuple[float, float]:
    res = stats.shapiro(x)
    return float(res.statistic), float(res.pvalue)


def _kolmogorov(x: np.ndarray) -> Tuple[float, float]:
    res = stats.kstest(x, "norm")
    return float(res.statistic), float(res.pvalue)


def _lilliefors(x: np.ndarray) -> Tuple[float, float]:
    stat, pval = lilliefors(x, dist="norm")
    return float(stat), float(pval)


NORMALITY_PROBES: Dict[str, ProbeFn] = {
    "shapiro": _shapiro,
    "kolmo": _kolmogorov,
    "lillie": _lilliefors,
}


def _spearman(x: np.ndarray, y: np.ndarray) -> Tuple[float, float]:
    res = stats.spearmanr(x, y)
    return float(res.statistic), float(res.pvalue)


def _pearson(x: np.ndarray, y: np.ndarray) -> Tuple[float, float]:
    res = stats.pearsonr(x, y)
    return float(res.statistic), float(res.pvalue)


def _kendall(x: np.ndarray, y: np.ndarray) -> Tuple[float, float]:
    res = stats.kendalltau(x, y)
    return float(res.statistic), float(res.pvalue)


CORRELATIONS: Dict[str, CorrelationFn] = {
    "spearman": _spearman,
    "pearson": _pearson,
    "kendall": _kendall,
}


def register_normality_probe(name: str, fn: ProbeFn) -> None:
    """Make `fn(residuals) -> (statistic, p_value)` available as norma_test=name."""
    if name == "none":
        raise ValueError("'none' is reserved.")
    NORMALITY_PROBES[name] = fn


def register_correlation(name: str, fn: CorrelationFn) -> None:
    """Make `fn(x, y) -> (statistic, p_value)` available as homo_cor=name."""
    CORRELATIONS[name] = fn


def _run(test: str, call: Callable[[], Tuple[float, float]]) -> ProbeResult:
    try:
        with np.errstate(all="ignore"):
            stat, pval = call()
    except Exception as e:
        return ProbeResult(test=test, status="unavailable", reason=str(e) or type(e).__name__)
    if not (np.isfinite(stat) and np.isfinite(pval)):
        return ProbeResult(test=test, status="unavailable", reason="non-finite statistic")
    return ProbeResult(test=test, status="computed", statistic=stat, p_value=pval)


def normality_test(residuals: Any, test: str = "none") -> ProbeResult:
    """Test the residuals for normality with the named probe."""
    if test == "none":
        return ProbeResult(test="none", status="skipped")
    try:
        fn = NORMALITY_PROBES[test]
    except KeyError as e:
        raise ValueError(
            f"Unknown normality test {test!r}. Available: {('none',) + tuple(NORMALITY_PROBES)}"
        ) from e
    r = np.asarray(residuals, dtype=float)
    return _run(test, lambda: fn(r))


def homogeneity_test(
    residuals: Any,
    area: Any,
    fitted: Any,
    test: str = "none",
    cor: str = "spearman",
) -> ProbeResult:
    """Correlate squared residuals with area ("cor.area") or fitted values ("cor.fitted")."""
    if test == "none":
        return ProbeResult(test="none", status="skipped")
    if test == "cor.area":
        other = np.asarray(area, dtype=float)
    elif test == "cor.fitted":
        other = np.asarray(fitted, dtype=float)
    else:
        raise ValueError(
            f"Unknown homogeneity test {test!r}. Available: ('none', 'cor.area', 'cor.fitted')"
        )
    try:
        fn = CORRELATIONS[cor]
    except KeyError as e:
        raise ValueError(
            f"Unknown correlation {cor!r}. Available: {tuple(CORRELATIONS)}"
        ) from e
    r2 = np.asarray(residuals, dtype=float) ** 2
    return _run(f"{test}:{cor}", lambda: fn(r2, other))
