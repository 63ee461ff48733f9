from __future__ import annotations

from dataclasses import dataclass, replace
import inspect
import logging
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
)

import numpy as np

from .inputs import SARData
from .params import GuessState, ParameterSpec
from .util import infer_param_names

logger = logging.getLogger(__name__)

Guesser = Callable[[np.ndarray, np.ndarray, GuessState], None]
Solver = Callable[[np.ndarray, np.ndarray], np.ndarray]


@dataclass(frozen=True)
class ModelSpec:
    """A candidate SAR family: curve function plus parameter metadata.

    Specs are stateless and shared read-only across fits. The fitting engine
    only uses `evaluate`, `residual_sum_of_squares`, `constraint_satisfied`
    and `initial_guesses`, so new families are added by building a spec and
    registering it (see `sarfit.models.register`).
    """

    name: str
    func: Callable[..., Any]
    params: Tuple[ParameterSpec, ...]
    formula: str = ""
    long_name: str = ""
    guessers: Tuple[Guesser, ...] = ()
    # Extra feasibility rule on top of the per-parameter bounds
    constraint: Optional[Callable[[Mapping[str, float]], bool]] = None
    # Horizontal asymptote of the curve for given params (None: no asymptote)
    asymptote: Optional[Callable[[Mapping[str, float]], Optional[float]]] = None
    # Closed-form least-squares solution (area, richness) -> theta
    solver: Optional[Solver] = None

    # ---- constructor ----
    @staticmethod
    def from_function(
        func: Callable[..., Any],
        *,
        name: Optional[str] = None,
        formula: str = "",
        long_name: str = "",
    ) -> "ModelSpec":
        """Construct a spec from a plain function signature f(A, p1, p2, ...)."""
        names = infer_param_names(func)

        # Numeric defaults in the signature become fallback guesses.
        sig = inspect.signature(func)
        specs = []
        for n in names:
            p = sig.parameters[n]
            g = None
            if p.default is not inspect._empty:
                d = p.default
                if isinstance(d, (int, float, np.number)) and not isinstance(d, bool):
                    g = float(d)
            specs.append(ParameterSpec(name=n, guess=g))
        return ModelSpec(
            name=name or getattr(func, "__name__", "model"),
            func=func,
            params=tuple(specs),
            formula=formula,
            long_name=long_name or (name or getattr(func, "__name__", "model")),
        )

    # ---- metadata ----
    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.params)

    @property
    def n_params(self) -> int:
        """Number of curve parameters (k)."""
        return len(self.params)

    @property
    def P(self) -> int:
        """Parameter count for information criteria: curve parameters + error term."""
        return self.n_params + 1

    @property
    def has_asymptote(self) -> bool:
        return self.asymptote is not None

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return (lo, hi) arrays of parameter bounds."""
        lo = np.array([p.lower for p in self.params], dtype=float)
        hi = np.array([p.upper for p in self.params], dtype=float)
        return lo, hi

    # ---- capabilities ----
    def theta(self, params: Any) -> np.ndarray:
        """Normalise a mapping or sequence of parameter values to a vector."""
        if isinstance(params, Mapping):
            missing = [n for n in self.param_names if n not in params]
            if missing:
                raise TypeError(f"Missing parameter values for: {missing}")
            return np.array([float(params[n]) for n in self.param_names], dtype=float)
        theta = np.asarray(params, dtype=float).reshape(-1)
        if theta.shape[0] != self.n_params:
            raise ValueError(
                f"Model {self.name!r} expects {self.n_params} parameters; got {theta.shape[0]}."
            )
        return theta

    def as_dict(self, params: Any) -> Dict[str, float]:
        return dict(zip(self.param_names, (float(v) for v in self.theta(params))))

    def evaluate(self, params: Any, area: Any) -> np.ndarray:
        """Predicted richness at `area`. Non-finite values are passed through."""
        theta = self.theta(params)
        a = np.asarray(area, dtype=float)
        with np.errstate(all="ignore"):
            out = np.asarray(self.func(a, *theta), dtype=float)
        if out.shape != a.shape:
            out = np.broadcast_to(out, a.shape).copy()
        return out

    def residual_sum_of_squares(self, params: Any, data: SARData) -> float:
        """RSS of the curve against the observations (inf if not finite)."""
        pred = self.evaluate(params, data.area)
        with np.errstate(all="ignore"):
            rss = float(np.sum((data.richness - pred) ** 2))
        return rss if np.isfinite(rss) else float("inf")

    def constraint_satisfied(self, params: Any, *, strict: bool = False) -> bool:
        """True if params are within bounds and satisfy the family constraint.

        strict=True additionally requires every parameter to be off its bounds.
        """
        theta = self.theta(params)
        for spec, v in zip(self.params, theta):
            if not spec.contains(v, strict=strict):
                return False
        if self.constraint is not None:
            return bool(self.constraint(self.as_dict(theta)))
        return True

    def asymptote_value(self, params: Any) -> Optional[float]:
        if self.asymptote is None:
            return None
        with np.errstate(all="ignore"):
            v = self.asymptote(self.as_dict(params))
        if v is None or not np.isfinite(v):
            return None
        return float(v)

    def initial_guess(self, data: SARData) -> np.ndarray:
        """Heuristic starting vector for the given data."""
        seeds = _compute_seed_map(self, data.area, data.richness)
        return np.array([seeds[n] for n in self.param_names], dtype=float)

    def initial_guesses(
        self,
        data: SARData,
        grid_n: Optional[int] = None,
        *,
        mode: str = "grid",
        max_starts: int = 100,
        seed: Optional[int] = 0,
    ) -> List[np.ndarray]:
        """Candidate starting vectors; the heuristic start comes first.

        grid_n=None returns only the heuristic start.
        """
        if grid_n is None:
            return [self.initial_guess(data)]
        from .grid import grid_starts

        return grid_starts(
            self, data, grid_n=grid_n, mode=mode, max_starts=max_starts, seed=seed
        )

    # ---- builders (pure; return new spec) ----
    def bound(self, **bounds: Tuple[Optional[float], Optional[float]]) -> "ModelSpec":
        """Return a new spec with parameter bounds applied."""
        m = {p.name: p for p in self.params}
        for k, b in bounds.items():
            if k not in m:
                raise KeyError(k)
            lo, hi = b
            m[k] = replace(m[k], bounds=(lo, hi))
        return replace(self, params=tuple(m[n] for n in self.param_names))

    def guess(self, **guesses: float) -> "ModelSpec":
        """Return a new spec with fallback guesses (used when guessers are silent)."""
        m = {p.name: p for p in self.params}
        for k, g in guesses.items():
            if k not in m:
                raise KeyError(k)
            m[k] = replace(m[k], guess=float(g))
        return replace(self, params=tuple(m[n] for n in self.param_names))

    def with_guesser(self, fn: Guesser) -> "ModelSpec":
        """Return a new spec with `fn` appended to the guesser list."""
        return replace(self, guessers=self.guessers + (fn,))

    def with_constraint(
        self, fn: Callable[[Mapping[str, float]], bool]
    ) -> "ModelSpec":
        return replace(self, constraint=fn)

    def with_asymptote(
        self, fn: Callable[[Mapping[str, float]], Optional[float]]
    ) -> "ModelSpec":
        return replace(self, asymptote=fn)

    def with_solver(self, fn: Solver) -> "ModelSpec":
        """Return a new spec solved in closed form by `fn(area, richness)`."""
        return replace(self, solver=fn)

    # ---- fitting ----
    def fit(self, data: Any, config: Any = None, **overrides: Any):
        """Fit this model to data and return a FitResult."""
        from .run import fit_model

        return fit_model(data, self, config=config, **overrides)


def _compute_seed_map(
    model: ModelSpec, area: np.ndarray, richness: np.ndarray
) -> Dict[str, float]:
    """Compute initial seeds for the given dataset.

    Precedence per parameter:

      1) model guessers (first guesser to set a name wins)
      2) fallback guess on the ParameterSpec
      3) midpoint of finite bounds
      4) else: raise ValueError

    Seeds are then clipped into the bounds.
    """
    seeds: Dict[str, float] = {}

    if model.guessers:
        gs = GuessState()
        with np.errstate(all="ignore"):
            for fn in model.guessers:
                fn(area, richness, gs)
        for n, v in gs.to_dict().items():
            if n in model.param_names and np.isfinite(float(v)):
                seeds[n] = float(v)

    for spec in model.params:
        if spec.name in seeds:
            continue
        if spec.guess is not None:
            seeds[spec.name] = float(spec.guess)
        elif np.isfinite(spec.lower) and np.isfinite(spec.upper):
            seeds[spec.name] = 0.5 * (spec.lower + spec.upper)

    missing = [n for n in model.param_names if n not in seeds]
    if missing:
        raise ValueError(
            f"Could not determine initial seeds for {model.name!r} parameters: "
            + ", ".join(missing)
            + ". Provide model.guess(...), a guesser, or finite bounds."
        )

    clipped: List[str] = []
    for spec in model.params:
        v = seeds[spec.name]
        c = spec.clip(v)
        if c != v:
            seeds[spec.name] = c
            clipped.append(spec.name)
    if clipped:
        logger.debug("%s: clipped seeds into bounds for %s", model.name, clipped)

    return seeds
