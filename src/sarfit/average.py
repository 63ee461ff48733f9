"""Fit collections of SAR models and average them with information-criterion weights."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
from typing import Any, Iterator, List, Literal, Optional, Sequence, Tuple, Union

import numpy as np
from warnings import warn
from scipy import stats as sps

from .config import FitConfig, resolve_config
from .grid import run_grid
from .inputs import SARData
from .model import ModelSpec
from .run import Band, FitResult, _resolve_model, build_result
from .util import readonly

logger = logging.getLogger(__name__)

CRITERIA = ("aicc", "aic", "bic")


@dataclass(frozen=True)
class RankRow:
    name: str
    value: float
    delta: float
    weight: float


def akaike_weights(values: Sequence[float]) -> np.ndarray:
    """w_i = exp(-delta_i/2) / sum_j exp(-delta_j/2), delta_i = v_i - min(v).

    Values equal to -inf (perfect fits) share all of the weight.
    """
    v = np.asarray(values, dtype=float)
    if v.size == 0:
        raise ValueError("Need at least one criterion value.")
    if np.any(np.isnan(v)) or np.any(np.isposinf(v)):
        raise ValueError("Criterion values must be finite or -inf.")
    best = np.isneginf(v)
    if best.any():
        return best.astype(float) / float(best.sum())
    w = np.exp(-0.5 * (v - v.min()))
    return w / w.sum()


@dataclass(frozen=True)
class ModelCollection:
    """Ordered, immutable set of fits of several models to the same data."""

    results: Tuple[FitResult, ...]
    data: SARData
    config: FitConfig

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(r.name for r in self.results)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[FitResult]:
        return iter(self.results)

    def __getitem__(self, key: Union[int, str]) -> FitResult:
        if isinstance(key, str):
            for r in self.results:
                if r.name == key:
                    return r
            raise KeyError(f"No model {key!r} in collection. Available: {self.names}")
        return self.results[key]

    def converged(self) -> Tuple[FitResult, ...]:
        return tuple(r for r in self.results if r.converged)

    def failed(self) -> Tuple[FitResult, ...]:
        """Fits whose optimiser did not converge; kept for inspection."""
        return tuple(r for r in self.results if not r.converged)

    def ranking(self, crit: str = "aicc") -> Tuple[RankRow, ...]:
        """Converged models with a defined criterion, best first."""
        _check_crit(crit)
        rows = [(r.name, r.criterion(crit)) for r in self.converged()]
        rows = [(n, v) for n, v in rows if v is not None]
        if not rows:
            return ()
        w = akaike_weights([v for _, v in rows])
        best = min(v for _, v in rows)
        out = [
            RankRow(name=n, value=v, delta=0.0 if v == best else v - best, weight=float(wi))
            for (n, v), wi in zip(rows, w)
        ]
        return tuple(sorted(out, key=lambda r: r.value))

    def average(self, **kwargs: Any) -> "AveragedFit":
        return average(self, **kwargs)


@dataclass(frozen=True)
class AveragedFit:
    """Weighted consensus of several fitted models.

    Intervals combine within-model variance (delta-method standard errors)
    and between-model spread: var = sum w*se^2 + sum w*(f - fbar)^2.
    """

    members: Tuple[FitResult, ...]
    weights: np.ndarray
    crit: str
    data: SARData
    conf_level: float
    fitted: np.ndarray
    confidence: Band
    prediction: Band
    rss: float
    r2: Optional[float]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(m.name for m in self.members)

    def model_predictions(self, area: Any) -> np.ndarray:
        """Member predictions at `area`, shape (n_models,) + shape(area)."""
        return _member_predictions(self.members, area)

    def predict(self, area: Any) -> np.ndarray:
        return np.tensordot(self.weights, self.model_predictions(area), axes=1)

    def interval(
        self,
        area: Any,
        *,
        level: Optional[float] = None,
        kind: Literal["confidence", "prediction"] = "confidence",
    ) -> Band:
        """Normal-approximation interval of the averaged curve at `area`."""
        level = self.conf_level if level is None else float(level)
        return _averaged_interval(self.members, self.weights, area, level, kind)


def _member_predictions(members: Sequence[FitResult], area: Any) -> np.ndarray:
    return np.stack([np.asarray(m.predict(area), dtype=float) for m in members])


def _averaged_interval(
    members: Sequence[FitResult],
    weights: np.ndarray,
    area: Any,
    level: float,
    kind: str,
) -> Band:
    if kind not in ("confidence", "prediction"):
        raise ValueError(f"Unknown interval kind {kind!r}.")
    if not (0.0 < level < 1.0):
        raise ValueError("level must lie in (0, 1).")

    preds = _member_predictions(members, area)
    w = weights.reshape((-1,) + (1,) * (preds.ndim - 1))
    fbar = np.sum(w * preds, axis=0)

    # Members without a covariance contribute no within-model variance
    within = np.zeros_like(fbar)
    for wi, m in zip(weights, members):
        se = m.prediction_se(area)
        if se is not None:
            within = within + wi * se**2
    between = np.sum(w * (preds - fbar) ** 2, axis=0)
    var = within + between
    if kind == "prediction":
        var = var + sum(wi * (m.sigma2 or 0.0) for wi, m in zip(weights, members))

    z = float(sps.norm.ppf(0.5 * (1.0 + level)))
    half = z * np.sqrt(var)
    return Band(low=fbar - half, high=fbar + half, median=fbar)


def _check_crit(crit: str) -> None:
    if crit not in CRITERIA:
        raise ValueError(f"crit must be one of {CRITERIA}; got {crit!r}.")


def fit_collection(
    data: Any,
    models: Optional[Sequence[Union[str, ModelSpec]]] = None,
    config: Optional[FitConfig] = None,
    **overrides: Any,
) -> ModelCollection:
    """Fit several models (all registered ones by default) to the same data."""
    cfg = resolve_config(config, overrides)
    data = SARData.from_table(data)
    if models is None:
        from .models import all_models

        specs: List[ModelSpec] = list(all_models())
    else:
        specs = [_resolve_model(m) for m in models]
    if not specs:
        raise ValueError("No models to fit.")
    names = [s.name for s in specs]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate model names in collection: {names}")

    if data.identical_richness and cfg.verbose:
        warn("All richness values identical", UserWarning, stacklevel=2)

    def one(spec: ModelSpec, inner: FitConfig) -> FitResult:
        return build_result(spec, data, run_grid(spec, data, inner), inner)

    if cfg.workers > 1 and len(specs) > 1:
        # Parallelise across models; attempts within each model run serially
        inner = cfg.replace(workers=1)
        with ThreadPoolExecutor(max_workers=cfg.workers) as executor:
            results = list(executor.map(lambda s: one(s, inner), specs))
    else:
        results = [one(s, cfg) for s in specs]

    n_ok = sum(1 for r in results if r.converged)
    logger.debug("fitted %d models, %d converged", len(results), n_ok)
    return ModelCollection(results=tuple(results), data=data, config=cfg)


def average(
    collection: ModelCollection,
    *,
    crit: str = "aicc",
    converged_only: bool = True,
    exclude_negative: bool = False,
    exclude_failed_tests: bool = False,
    alpha: float = 0.05,
    conf_level: Optional[float] = None,
) -> AveragedFit:
    """Information-criterion weighted average of the models in `collection`.

    Models are left out of the weighting (but stay in the collection) when
    they did not converge (unless converged_only=False), when their criterion
    is undefined, when they predict negative richness (exclude_negative) or
    when a residual diagnostic rejects at `alpha` (exclude_failed_tests).
    """
    _check_crit(crit)
    if not isinstance(collection, ModelCollection):
        raise TypeError("average() expects a ModelCollection.")
    cfg = collection.config
    level = cfg.conf_level if conf_level is None else float(conf_level)
    if not (0.0 < level < 1.0):
        raise ValueError("conf_level must lie in (0, 1).")

    members: List[FitResult] = []
    values: List[float] = []
    undefined: List[str] = []
    for r in collection:
        if converged_only and not r.converged:
            logger.debug("excluding %s: not converged", r.name)
            continue
        if exclude_negative and r.neg_check:
            logger.debug("excluding %s: negative fitted values", r.name)
            continue
        if exclude_failed_tests and (
            r.norma_test.passed(alpha) is False or r.homo_test.passed(alpha) is False
        ):
            logger.debug("excluding %s: residual diagnostics rejected", r.name)
            continue
        v = r.criterion(crit)
        if v is None:
            undefined.append(r.name)
            continue
        members.append(r)
        values.append(v)

    if undefined and cfg.verbose:
        warn(
            f"{crit.upper()} undefined for {undefined}; excluded from averaging.",
            UserWarning,
            stacklevel=2,
        )
    if not members:
        raise ValueError("No models left to average after exclusions.")

    weights = readonly(akaike_weights(values))
    data = collection.data
    fitted = np.tensordot(weights, _member_predictions(members, data.area), axes=1)
    with np.errstate(all="ignore"):
        rss = float(np.sum((data.richness - fitted) ** 2))
    tss = data.tss
    r2 = None if tss == 0.0 else 1.0 - rss / tss

    logger.debug(
        "averaged %d models by %s: %s",
        len(members),
        crit,
        {m.name: round(float(w), 4) for m, w in zip(members, weights)},
    )
    return AveragedFit(
        members=tuple(members),
        weights=weights,
        crit=crit,
        data=data,
        conf_level=level,
        fitted=readonly(fitted),
        confidence=_averaged_interval(members, weights, data.area, level, "confidence"),
        prediction=_averaged_interval(members, weights, data.area, level, "prediction"),
        rss=rss,
        r2=r2,
    )
