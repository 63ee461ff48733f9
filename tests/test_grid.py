import numpy as np
import pytest

from sarfit import FitConfig, SARData, models
from sarfit.backends import get_backend
from sarfit.backends.common import FitAttempt
from sarfit.grid import grid_starts, parameter_candidates, run_grid, select_best
from sarfit.params import ParameterSpec
from sarfit.util import nested_exponents


def _data() -> SARData:
    area = np.geomspace(1.0, 500.0, 12)
    return SARData.from_arrays(area, 4.0 * area**0.3)


def test_nested_exponents_grow_by_prefix():
    small = nested_exponents(3, 2.0)
    large = nested_exponents(6, 2.0)
    assert small[0] == 0.0
    np.testing.assert_array_equal(large[:3], small)
    assert np.all(np.abs(large) < 2.0)


def test_candidates_contain_guess_and_small_start():
    spec = ParameterSpec("z", bounds=(0.0, None))
    cands = parameter_candidates(spec, 0.3, 4)
    assert cands[0] == 0.3
    assert cands[1] == pytest.approx(1e-7)
    assert all(c >= 0.0 for c in cands)
    assert set(parameter_candidates(spec, 0.3, 2)) <= set(cands)


def test_candidates_cover_both_signs_for_free_zero_guess():
    spec = ParameterSpec("d")
    cands = parameter_candidates(spec, 0.0, 3)
    assert any(c > 0 for c in cands)
    assert any(c < 0 for c in cands)


def test_candidates_are_clipped_into_bounds():
    spec = ParameterSpec("z", bounds=(0.0, 1.0))
    cands = parameter_candidates(spec, 0.9, 5)
    assert all(0.0 <= c <= 1.0 for c in cands)
    assert len(cands) == len(set(cands))


def test_grid_modes():
    data = _data()
    spec = models.lookup("weibull4")

    none = grid_starts(spec, data, grid_n=4, mode="none")
    full = grid_starts(spec, data, grid_n=4, mode="grid", max_starts=10_000)
    part = grid_starts(spec, data, grid_n=4, mode="partial", max_starts=10, seed=1)

    assert len(none) == 1
    assert len(full) > 10
    assert len(part) == 10
    for starts in (full, part):
        np.testing.assert_array_equal(starts[0], none[0])
    full_set = {tuple(s) for s in full}
    assert all(tuple(s) in full_set for s in part)

    again = grid_starts(spec, data, grid_n=4, mode="partial", max_starts=10, seed=1)
    np.testing.assert_array_equal(np.array(part), np.array(again))


def test_partial_keeps_small_grids_whole():
    data = _data()
    spec = models.lookup("power")
    full = grid_starts(spec, data, grid_n=2, mode="grid")
    part = grid_starts(spec, data, grid_n=2, mode="partial", max_starts=500)
    np.testing.assert_array_equal(np.array(full), np.array(part))


def test_grid_mode_is_capped_and_keeps_heuristic_start():
    data = _data()
    spec = models.lookup("betap")
    heuristic = spec.initial_guess(data)

    everything = grid_starts(spec, data, grid_n=5, mode="grid", max_starts=10_000)
    capped = grid_starts(spec, data, grid_n=5, mode="grid", max_starts=50)

    assert len(everything) > 50
    assert len(capped) == 50
    np.testing.assert_array_equal(capped[0], heuristic)
    np.testing.assert_array_equal(np.array(capped), np.array(everything[:50]))


def test_capped_grids_grow_by_inclusion():
    data = _data()
    spec = models.lookup("weibull4")
    for cap in (20, 100, 400):
        previous = None
        for g in (1, 2, 3, 5):
            starts = {tuple(s) for s in grid_starts(spec, data, grid_n=g, max_starts=cap)}
            assert len(starts) <= cap
            if previous is not None:
                assert previous <= starts
            previous = starts


def test_default_config_bounds_four_parameter_grid():
    cfg = FitConfig()
    spec = models.lookup("weibull4")
    starts = grid_starts(
        spec,
        _data(),
        grid_n=cfg.grid_n,
        mode=cfg.grid_start,
        max_starts=cfg.grid_max_starts,
        seed=cfg.seed,
    )
    assert 1 < len(starts) <= cfg.grid_max_starts


def _attempt(theta, rss, converged=True):
    theta = np.asarray(theta, dtype=float)
    return FitAttempt(start=theta, theta=theta, rss=rss, converged=converged)


def test_select_best_prefers_lowest_converged_rss():
    spec = models.lookup("power")
    attempts = [
        _attempt([1.0, 0.2], 5.0),
        _attempt([1.0, 0.3], 1.0, converged=False),
        _attempt([2.0, 0.3], 2.0),
    ]
    best, idx = select_best(spec, attempts)
    assert idx == 2
    assert best.converged


def test_select_best_tie_prefers_interior_parameters():
    spec = models.lookup("power")
    attempts = [_attempt([1.0, 0.0], 2.0), _attempt([1.0, 0.3], 2.0 * (1 + 1e-10))]
    best, idx = select_best(spec, attempts)
    assert idx == 1


def test_select_best_falls_back_to_lowest_finite_rss():
    spec = models.lookup("power")
    attempts = [
        _attempt([1.0, 0.2], float("inf"), converged=False),
        _attempt([1.0, 0.3], 3.0, converged=False),
        _attempt([1.0, 0.4], 4.0, converged=False),
    ]
    best, idx = select_best(spec, attempts)
    assert idx == 1
    assert not best.converged


def test_backend_soft_fails_on_bad_start():
    data = _data()
    spec = models.lookup("power")
    backend = get_backend("scipy.curve_fit")
    attempt = backend.fit_one(
        model=spec,
        data=data,
        p0=np.array([np.nan, 0.3]),
        bounds=spec.bounds(),
        options={"maxfev": 100},
    )
    assert not attempt.converged
    assert attempt.message


def test_unknown_backend_is_value_error():
    with pytest.raises(ValueError, match="Unknown backend"):
        get_backend("lbfgs")


def test_run_grid_reports_attempt_counts():
    data = _data()
    spec = models.lookup("power")
    cfg = FitConfig(grid_n=3)

    outcome = run_grid(spec, data, cfg)
    assert outcome.attempts_run == len(grid_starts(spec, data, grid_n=3))
    assert 1 <= outcome.n_converged <= outcome.attempts_run
    assert outcome.best.converged
    best_rss = min(a.rss for a in outcome.attempts if a.converged)
    assert outcome.best.rss == pytest.approx(best_rss, rel=1e-8)


def test_closed_form_model_runs_single_attempt():
    outcome = run_grid(models.lookup("linear"), _data(), FitConfig())
    assert outcome.attempts_run == 1
    assert outcome.best.message == "closed form"
