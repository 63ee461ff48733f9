from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

GRID_START_MODES = ("none", "grid", "partial")
HOMO_TESTS = ("none", "cor.area", "cor.fitted")


def _check_choice(option: str, value: Any, allowed) -> None:
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValueError(f"{option} must be one of {allowed}; got {value!r}.")


def _check_positive_int(option: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{option} must be a positive integer; got {value!r}.")


@dataclass(frozen=True)
class FitConfig:
    """Options shared by every fit.

    norma_test:
        Residual normality probe: "none", "shapiro", "kolmo" or "lillie".
    homo_test:
        Residual homogeneity probe: "none", "cor.area" or "cor.fitted".
    homo_cor:
        Correlation used by the homogeneity probe: "spearman", "pearson" or
        "kendall" (only checked when homo_test != "none").
    grid_start, grid_n, grid_max_starts:
        Multi-start strategy. "none" runs the heuristic start only, "grid"
        the first grid_max_starts starts of the grid (coarse levels first),
        "partial" a seeded random subset of at most grid_max_starts starts.
    seed:
        Seed for the "partial" subsampling; identical configs reproduce.
    backend, maxfev:
        Optimiser and its per-attempt function evaluation budget.
    workers:
        Threads used to run independent attempts / models.
    conf_level:
        Coverage of coefficient and prediction intervals.
    verbose:
        Emit non-fatal warnings (e.g. identical richness values).
    """

    norma_test: str = "none"
    homo_test: str = "none"
    homo_cor: str = "spearman"
    grid_start: str = "grid"
    grid_n: int = 5
    grid_max_starts: int = 100
    seed: Optional[int] = 0
    backend: str = "scipy.curve_fit"
    maxfev: int = 5000
    workers: int = 1
    conf_level: float = 0.95
    verbose: bool = True

    def __post_init__(self) -> None:
        from .backends import AVAILABLE_BACKENDS
        from .diagnostics import CORRELATIONS, NORMALITY_PROBES

        _check_choice("norma_test", self.norma_test, ("none",) + tuple(NORMALITY_PROBES))
        _check_choice("homo_test", self.homo_test, HOMO_TESTS)
        if self.homo_test != "none":
            _check_choice("homo_cor", self.homo_cor, tuple(CORRELATIONS))
        _check_choice("grid_start", self.grid_start, GRID_START_MODES)
        _check_choice("backend", self.backend, AVAILABLE_BACKENDS)
        _check_positive_int("grid_n", self.grid_n)
        _check_positive_int("grid_max_starts", self.grid_max_starts)
        _check_positive_int("maxfev", self.maxfev)
        _check_positive_int("workers", self.workers)
        if self.seed is not None and (
            isinstance(self.seed, bool) or not isinstance(self.seed, int)
        ):
            raise ValueError(f"seed must be an integer or None; got {self.seed!r}.")
        if not (0.0 < float(self.conf_level) < 1.0):
            raise ValueError(f"conf_level must lie in (0, 1); got {self.conf_level!r}.")
        if not isinstance(self.verbose, bool):
            raise TypeError("verbose should be logical (True/False).")

    def replace(self, **changes: Any) -> "FitConfig":
        """Return a validated copy with some options changed."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise TypeError(f"Unknown configuration option(s): {unknown}")
        return replace(self, **changes)


def resolve_config(
    config: Optional[FitConfig] = None, overrides: Optional[Mapping[str, Any]] = None
) -> FitConfig:
    """Merge keyword overrides into a config (defaults when config is None)."""
    if config is None:
        config = FitConfig()
    elif not isinstance(config, FitConfig):
        raise TypeError("config must be a FitConfig instance.")
    if overrides:
        config = config.replace(**dict(overrides))
    return config
