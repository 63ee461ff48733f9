import numpy as np
import pytest

from sarfit import FitConfig, fit_model, register_correlation, register_normality_probe
from sarfit.diagnostics import homogeneity_test, normality_test


def _residuals(n=25, seed=0):
    return np.random.default_rng(seed).normal(0.0, 1.0, size=n)


def test_none_is_skipped():
    res = normality_test(_residuals(), "none")
    assert res.status == "skipped"
    assert res.p_value is None
    assert res.passed() is None


@pytest.mark.parametrize("test", ["shapiro", "kolmo", "lillie"])
def test_normality_probes_compute(test):
    res = normality_test(_residuals(), test)
    assert res.status == "computed"
    assert res.test == test
    assert 0.0 <= res.p_value <= 1.0
    assert np.isfinite(res.statistic)


def test_probe_failure_degrades_to_unavailable():
    # Shapiro-Wilk needs at least three observations
    res = normality_test(np.array([0.1, -0.2]), "shapiro")
    assert res.status == "unavailable"
    assert res.reason
    assert res.passed() is None


@pytest.mark.parametrize("cor", ["spearman", "pearson", "kendall"])
def test_homogeneity_correlations(cor):
    rng = np.random.default_rng(1)
    area = np.geomspace(1.0, 100.0, 20)
    resid = rng.normal(0.0, 1.0, size=area.size) * area
    res = homogeneity_test(resid, area, area, "cor.area", cor)
    assert res.status == "computed"
    assert res.test == f"cor.area:{cor}"
    assert res.statistic > 0


def test_constant_covariate_is_unavailable():
    resid = _residuals(10)
    res = homogeneity_test(resid, np.ones(10), np.ones(10), "cor.fitted", "pearson")
    assert res.status == "unavailable"


def test_unknown_probe_names_raise():
    with pytest.raises(ValueError, match="Unknown normality test"):
        normality_test(_residuals(), "anderson")
    with pytest.raises(ValueError, match="Unknown correlation"):
        homogeneity_test(_residuals(), np.ones(25), np.ones(25), "cor.area", "distance")


def test_registered_probes_are_accepted_by_config():
    register_normality_probe("always_normal", lambda r: (0.0, 1.0))
    register_correlation("zero_cor", lambda x, y: (0.0, 1.0))

    cfg = FitConfig(norma_test="always_normal", homo_test="cor.area", homo_cor="zero_cor")
    data = [[1.0, 3.0], [2.0, 5.0], [4.0, 6.0], [8.0, 9.0], [16.0, 11.0]]
    res = fit_model(data, "loga", cfg)

    assert res.norma_test.computed and res.norma_test.p_value == 1.0
    assert res.homo_test.computed and res.homo_test.test == "cor.area:zero_cor"


def test_fit_with_probes_never_raises_on_tiny_data():
    data = [[1.0, 3.0], [2.0, 5.0]]
    res = fit_model(data, "linear", norma_test="shapiro", homo_test="cor.fitted")
    assert res.norma_test.status == "unavailable"
    assert res.homo_test.status in ("computed", "unavailable")
