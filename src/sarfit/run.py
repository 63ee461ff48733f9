"""Single-model pipeline: fit one family and assemble its FitResult."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional, Tuple

import numpy as np
from warnings import warn
from scipy import stats as sps

from . import classify, criteria, diagnostics
from .config import FitConfig, resolve_config
from .grid import run_grid
from .inputs import SARData
from .model import ModelSpec
from .params import Coefficient
from .util import frozen_mapping, numerical_jacobian, readonly


@dataclass(frozen=True)
class Band:
    low: np.ndarray
    high: np.ndarray
    median: Optional[np.ndarray] = None


@dataclass(frozen=True)
class FitResult:
    """Immutable outcome of fitting one model to one observation set.

    Criteria that are undefined for the data (AICc with too few points, R2
    with identical richness values) are None.
    """

    model: ModelSpec
    data: SARData
    params: Mapping[str, float]
    rss: float
    converged: bool
    fitted: np.ndarray
    residuals: np.ndarray
    aic: float
    aicc: Optional[float]
    bic: float
    r2: Optional[float]
    r2a: Optional[float]
    coef: Tuple[Coefficient, ...]
    cov: Optional[np.ndarray]
    observed_shape: str
    asymptote: bool
    neg_check: bool
    norma_test: diagnostics.ProbeResult
    homo_test: diagnostics.ProbeResult
    conf_level: float = 0.95
    stats: Mapping[str, Any] = field(default_factory=frozen_mapping)

    @property
    def name(self) -> str:
        return self.model.name

    @property
    def theta(self) -> np.ndarray:
        return self.model.theta(self.params)

    @property
    def n(self) -> int:
        return self.data.n

    @property
    def sigma2(self) -> Optional[float]:
        """Residual variance RSS/(n - k), None without residual degrees of freedom."""
        df = self.data.n - self.model.n_params
        if df <= 0 or not np.isfinite(self.rss):
            return None
        return self.rss / df

    def __getitem__(self, name: str) -> Coefficient:
        for c in self.coef:
            if c.name == name:
                return c
        raise KeyError(name)

    def criterion(self, crit: str = "aicc") -> Optional[float]:
        """Value of 'aic', 'aicc' or 'bic'; None if undefined. A perfect fit gives -inf."""
        if crit not in ("aic", "aicc", "bic"):
            raise ValueError(f"crit must be one of ('aic', 'aicc', 'bic'); got {crit!r}.")
        v = getattr(self, crit)
        if v is None or np.isnan(v) or np.isposinf(v):
            return None
        return float(v)

    def predict(self, area: Any) -> np.ndarray:
        """Evaluate the fitted curve at `area`."""
        return self.model.evaluate(self.params, area)

    def prediction_se(self, area: Any) -> Optional[np.ndarray]:
        """Delta-method standard error of the fitted curve at `area` (None without cov)."""
        if self.cov is None:
            return None
        a = np.atleast_1d(np.asarray(area, dtype=float))
        jac = numerical_jacobian(
            lambda t: self.model.evaluate(t, a), self.theta, bounds=self.model.bounds()
        )
        with np.errstate(all="ignore"):
            var = np.einsum("ij,jk,ik->i", jac, self.cov, jac)
        se = np.sqrt(np.clip(var, 0.0, None))
        return se.reshape(np.shape(area))

    def band(
        self,
        area: Any,
        *,
        level: Optional[float] = None,
        kind: Literal["confidence", "prediction"] = "confidence",
    ) -> Band:
        """Normal-approximation band around the fitted curve at `area`.

        kind="prediction" adds the residual variance to the curve variance.
        """
        if kind not in ("confidence", "prediction"):
            raise ValueError(f"Unknown band kind {kind!r}.")
        level = self.conf_level if level is None else float(level)
        if not (0.0 < level < 1.0):
            raise ValueError("level must lie in (0, 1).")
        se = self.prediction_se(area)
        if se is None:
            raise ValueError("No covariance available for band().")
        var = se**2
        if kind == "prediction":
            s2 = self.sigma2
            if s2 is None:
                raise ValueError("No residual variance available for a prediction band.")
            var = var + s2
        z = float(sps.norm.ppf(0.5 * (1.0 + level)))
        mid = self.predict(area)
        half = z * np.sqrt(var)
        return Band(low=mid - half, high=mid + half, median=mid)


def _resolve_model(model: Any) -> ModelSpec:
    if isinstance(model, ModelSpec):
        return model
    if isinstance(model, str):
        from .models import lookup

        return lookup(model)
    raise TypeError(f"model must be a ModelSpec or a registered name; got {type(model).__name__}.")


def fit_model(
    data: Any,
    model: Any,
    config: Optional[FitConfig] = None,
    **overrides: Any,
) -> FitResult:
    """Fit one SAR model to an observation set.

    `data` is a SARData or any two-column (area, richness) table; `model` is
    a ModelSpec or a registered model name. Options come from `config`
    with keyword `overrides` applied on top.
    """
    cfg = resolve_config(config, overrides)
    data = SARData.from_table(data)
    spec = _resolve_model(model)

    if data.identical_richness and cfg.verbose:
        warn("All richness values identical", UserWarning, stacklevel=2)

    outcome = run_grid(spec, data, cfg)
    return build_result(spec, data, outcome, cfg)


def build_result(spec: ModelSpec, data: SARData, outcome: Any, cfg: FitConfig) -> FitResult:
    """Assemble criteria, coefficient table, flags and diagnostics for the best attempt."""
    best = outcome.best
    theta = np.asarray(best.theta, dtype=float)
    n = data.n

    fitted = spec.evaluate(theta, data.area)
    with np.errstate(all="ignore"):
        residuals = data.richness - fitted
    rss = float(best.rss)

    ic = criteria.information_criteria(rss, n, spec.P)
    r2, r2a = criteria.r_squared(rss, data.tss, n, spec.P)

    cov = None
    if np.isfinite(rss) and np.all(np.isfinite(theta)):
        cov = criteria.covariance(spec, theta, data.area, rss)
    coef = criteria.coefficient_table(spec.param_names, theta, cov, n, cfg.conf_level)

    has_asym = classify.asymptote_flag(spec, theta, data.richness)
    if np.all(np.isfinite(theta)):
        shape = classify.observed_shape(spec, theta, data.area, asymptote=has_asym)
    else:
        shape = "unclassifiable"

    norma = diagnostics.normality_test(residuals, cfg.norma_test)
    homo = diagnostics.homogeneity_test(
        residuals, data.area, fitted, cfg.homo_test, cfg.homo_cor
    )

    return FitResult(
        model=spec,
        data=data,
        params=frozen_mapping(spec.as_dict(theta)),
        rss=rss,
        converged=bool(best.converged),
        fitted=readonly(fitted),
        residuals=readonly(residuals),
        aic=ic.aic,
        aicc=ic.aicc,
        bic=ic.bic,
        r2=r2,
        r2a=r2a,
        coef=coef,
        cov=None if cov is None else readonly(cov),
        observed_shape=shape,
        asymptote=has_asym,
        neg_check=classify.neg_check(fitted),
        norma_test=norma,
        homo_test=homo,
        conf_level=cfg.conf_level,
        stats=frozen_mapping(
            {
                "backend": cfg.backend,
                "n_starts": outcome.attempts_run,
                "n_converged": outcome.n_converged,
                "message": best.message,
                "start": tuple(float(v) for v in best.start),
                "nfev": best.nfev,
                "loglik": ic.loglik,
            }
        ),
    )
