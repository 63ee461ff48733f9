"""sarfit public API."""
from .inputs import SARData
from .model import ModelSpec
from .config import FitConfig
from .run import Band, FitResult, fit_model
from .average import (
    AveragedFit,
    ModelCollection,
    RankRow,
    akaike_weights,
    average,
    fit_collection,
)
from .diagnostics import ProbeResult, register_correlation, register_normality_probe
from . import models

__all__ = [
    "SARData",
    "ModelSpec",
    "FitConfig",
    "Band",
    "FitResult",
    "fit_model",
    "AveragedFit",
    "ModelCollection",
    "RankRow",
    "akaike_weights",
    "average",
    "fit_collection",
    "ProbeResult",
    "register_correlation",
    "register_normality_probe",
    "models",
]
