import numpy as np
import pytest

from sarfit import ModelSpec, SARData, fit_model, models
from sarfit.models.asymptotic import negexpo_func
from sarfit.params import GuessState


AREA = np.geomspace(1.0, 1000.0, 20)

# Parameters that produce realistic richness curves over AREA
TRUE_PARAMS = {
    "linear": {"c": 5.0, "m": 0.05},
    "power": {"c": 5.0, "z": 0.3},
    "powerR": {"f": 2.0, "c": 4.0, "z": 0.3},
    "epm1": {"c": 5.0, "z": 0.3, "d": 0.02},
    "epm2": {"c": 5.0, "z": 0.3, "d": 0.5},
    "p1": {"c": 5.0, "z": 0.35, "d": 0.0005},
    "p2": {"c": 5.0, "z": 0.3, "d": 0.5},
    "loga": {"c": 5.0, "z": 4.0},
    "koba": {"c": 8.0, "z": 3.0},
    "monod": {"d": 60.0, "c": 50.0},
    "negexpo": {"d": 60.0, "z": 0.01},
    "chapman": {"d": 60.0, "z": 0.01, "c": 1.5},
    "weibull3": {"d": 60.0, "c": 0.05, "z": 0.7},
    "asymp": {"d": 60.0, "c": 50.0, "z": 0.99},
    "ratio": {"c": 2.0, "z": 1.5, "d": 0.02},
    "mmf": {"d": 60.0, "c": 20.0, "z": 0.8},
    "gompertz": {"d": 60.0, "z": 0.01, "c": 100.0},
    "weibull4": {"d": 60.0, "c": 0.05, "z": 0.7, "f": 1.5},
    "betap": {"d": 60.0, "c": 100.0, "z": 1.2, "f": 0.8},
    "heleg": {"c": 1.2, "f": 0.02, "z": 0.8},
    "logistic": {"d": 60.0, "z": 0.01, "f": 2.0},
}


def test_registry_lists_every_family_in_order():
    assert models.names() == tuple(TRUE_PARAMS)
    assert len(models.all_models()) == 21
    assert models.lookup("power").formula == "S == c*A^z"


def test_unknown_name_lists_available_models():
    with pytest.raises(KeyError, match="Available"):
        models.lookup("powerlaw")


def test_register_refuses_silent_replacement():
    with pytest.raises(ValueError, match="already registered"):
        models.register(models.power())


def test_register_custom_family():
    def half_power(A, c=1.0):
        return c * np.sqrt(A)

    spec = ModelSpec.from_function(half_power, name="half_power")
    try:
        models.register(spec)
        assert models.lookup("half_power") is spec
        res = fit_model(
            SARData.from_arrays(AREA, 3.0 * np.sqrt(AREA)), "half_power", grid_start="none"
        )
        assert res.converged
        assert res.params["c"] == pytest.approx(3.0, rel=1e-4)
    finally:
        models._MODELS.pop("half_power", None)


def test_parameter_count_includes_error_term():
    spec = models.lookup("chapman")
    assert spec.param_names == ("d", "z", "c")
    assert spec.n_params == 3
    assert spec.P == 4


def test_builders_return_new_specs():
    spec = models.power()
    bounded = spec.bound(z=(0.0, 1.0)).guess(c=2.0)

    assert spec.params[1].bounds == (0.0, None)
    assert bounded.params[1].bounds == (0.0, 1.0)
    assert bounded.params[0].guess == 2.0
    with pytest.raises(KeyError):
        spec.bound(q=(0.0, 1.0))


def test_constraint_satisfied_respects_bounds():
    spec = models.lookup("asymp")
    assert spec.constraint_satisfied({"d": 50.0, "c": 10.0, "z": 0.5})
    assert not spec.constraint_satisfied({"d": 50.0, "c": 10.0, "z": 1.5})
    assert spec.constraint_satisfied({"d": 50.0, "c": 10.0, "z": 1.0})
    assert not spec.constraint_satisfied({"d": 50.0, "c": 10.0, "z": 1.0}, strict=True)


def test_residual_sum_of_squares_is_inf_for_non_finite_curve():
    data = SARData.from_arrays([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
    spec = models.lookup("negexpo")
    assert spec.residual_sum_of_squares({"d": np.inf, "z": 1.0}, data) == float("inf")


def test_evaluate_matches_module_function():
    spec = models.lookup("negexpo")
    np.testing.assert_allclose(
        spec.evaluate({"d": 40.0, "z": 0.02}, AREA), negexpo_func(AREA, 40.0, 0.02)
    )


def test_initial_guesses_start_with_heuristic():
    data = SARData.from_arrays(AREA, 5.0 * AREA**0.3)
    spec = models.lookup("power")

    starts = spec.initial_guesses(data, grid_n=3)
    np.testing.assert_array_equal(starts[0], spec.initial_guess(data))
    assert len(starts) > 1
    assert all(spec.constraint_satisfied(s) for s in starts)
    assert len(spec.initial_guesses(data)) == 1


@pytest.mark.parametrize("name", list(TRUE_PARAMS))
def test_each_family_fits_its_own_curve(name):
    spec = models.lookup(name)
    richness = spec.evaluate(TRUE_PARAMS[name], AREA)
    data = SARData.from_arrays(AREA, richness)

    res = fit_model(
        data, spec, grid_start="partial", grid_n=3, grid_max_starts=30, verbose=False
    )

    assert res.converged
    assert res.r2 > 0.95
    assert set(res.params) == set(spec.param_names)
    assert res.fitted.shape == AREA.shape


def test_guess_state_records_assignments():
    g = GuessState()
    assert g.is_unset("d")
    with pytest.raises(AttributeError, match="No guess"):
        g.d
    g.d = 42.0
    assert not g.is_unset("d")
    assert g.d == 42.0
    assert g.to_dict() == {"d": 42.0}
