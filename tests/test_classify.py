import numpy as np
import pytest

from sarfit import models
from sarfit.classify import asymptote_flag, neg_check, observed_shape


AREA = np.linspace(1.0, 100.0, 15)


@pytest.mark.parametrize(
    "name, params, expected",
    [
        ("linear", {"c": 2.0, "m": 0.5}, "linear"),
        ("power", {"c": 3.0, "z": 1.0}, "linear"),
        ("power", {"c": 3.0, "z": 0.4}, "concave"),
        ("power", {"c": 0.1, "z": 1.6}, "convex"),
        ("logistic", {"d": 50.0, "z": 0.1, "f": 5.0}, "sigmoid"),
        ("linear", {"c": 7.0, "m": 0.0}, "unclassifiable"),
    ],
)
def test_observed_shape(name, params, expected):
    spec = models.lookup(name)
    assert observed_shape(spec, params, AREA) == expected


def test_concave_with_asymptote_flag_is_asymptotic():
    spec = models.lookup("negexpo")
    params = {"d": 40.0, "z": 0.05}
    assert observed_shape(spec, params, AREA, asymptote=True) == "asymptotic"
    assert observed_shape(spec, params, AREA, asymptote=False) == "concave"


def test_non_finite_curve_is_unclassifiable():
    spec = models.lookup("power")
    assert observed_shape(spec, {"c": np.inf, "z": 0.5}, AREA) == "unclassifiable"


def test_asymptote_flag_requires_value_in_observed_range():
    spec = models.lookup("negexpo")
    richness = np.array([5.0, 20.0, 38.0])
    assert asymptote_flag(spec, {"d": 30.0, "z": 0.1}, richness)
    assert not asymptote_flag(spec, {"d": 80.0, "z": 0.1}, richness)
    # Families without an asymptote never set the flag
    assert not asymptote_flag(models.lookup("power"), {"c": 1.0, "z": 0.3}, richness)


def test_ratio_asymptote_is_z_over_d():
    spec = models.lookup("ratio")
    assert spec.asymptote_value({"c": 1.0, "z": 2.0, "d": 0.1}) == pytest.approx(20.0)
    assert spec.asymptote_value({"c": 1.0, "z": 2.0, "d": 0.0}) is None


def test_neg_check():
    assert neg_check([1.0, -0.1, 3.0])
    assert not neg_check([0.0, 2.0])
