"""Built-in SAR model families + registry."""

from __future__ import annotations

from typing import Dict, Tuple

from ..model import ModelSpec
from .asymptotic import asymp, chapman, mmf, monod, negexpo, ratio, weibull3
from .linear import linear
from .power import epm1, epm2, koba, loga, p1, p2, power, power_rossberg
from .sigmoid import betap, gompertz, heleg, logistic, weibull4

_MODELS: Dict[str, ModelSpec] = {}


def register(spec: ModelSpec, *, replace: bool = False) -> ModelSpec:
    """Add a model to the registry and return it.

    Registering an existing name raises ValueError unless replace=True.
    """
    if not isinstance(spec, ModelSpec):
        raise TypeError(f"Expected a ModelSpec; got {type(spec).__name__}.")
    if spec.name in _MODELS and not replace:
        raise ValueError(
            f"Model {spec.name!r} is already registered; pass replace=True to override."
        )
    _MODELS[spec.name] = spec
    return spec


def lookup(name: str) -> ModelSpec:
    """Return a registered model by name."""
    try:
        return _MODELS[name]
    except KeyError as e:
        raise KeyError(f"Unknown model {name!r}. Available: {names()}") from e


def names() -> Tuple[str, ...]:
    return tuple(_MODELS.keys())


def all_models() -> Tuple[ModelSpec, ...]:
    """All registered models in registration order."""
    return tuple(_MODELS.values())


for _factory in (
    linear,
    power,
    power_rossberg,
    epm1,
    epm2,
    p1,
    p2,
    loga,
    koba,
    monod,
    negexpo,
    chapman,
    weibull3,
    asymp,
    ratio,
    mmf,
    gompertz,
    weibull4,
    betap,
    heleg,
    logistic,
):
    register(_factory())
del _factory


__all__ = [
    "register",
    "lookup",
    "names",
    "all_models",
    "linear",
    "power",
    "power_rossberg",
    "epm1",
    "epm2",
    "p1",
    "p2",
    "loga",
    "koba",
    "monod",
    "negexpo",
    "chapman",
    "weibull3",
    "asymp",
    "ratio",
    "mmf",
    "gompertz",
    "weibull4",
    "betap",
    "heleg",
    "logistic",
]
