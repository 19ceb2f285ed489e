import numpy as np
import pandas as pd
import pytest
from scipy import stats

from hdstats.stats.hypothesis import HypothesisTesting
from hdstats.stats.shrinkage import (
    PriorVariance,
    fit_f_dist,
    moderated_t_test,
    squeeze_var,
    trigamma,
    trigamma_inverse,
)


@pytest.mark.parametrize("y", [0.05, 0.5, 1.0, 4.0, 50.0])
def test_trigamma_inverse_inverts_trigamma(y):
    assert trigamma_inverse(trigamma(y))[0] == pytest.approx(y, rel=1e-6)


def test_trigamma_inverse_rejects_non_positive():
    with pytest.raises(ValueError):
        trigamma_inverse([0.5, 0.0])


def test_fit_f_dist_recovers_prior(rng):
    d, d0, s0_sq = 4, 8, 0.3
    n_genes = 20000
    s2 = s0_sq * (rng.chisquare(d, n_genes) / d) / (rng.chisquare(d0, n_genes) / d0)

    prior = fit_f_dist(s2, d)

    assert 6.0 < prior.d0 < 10.5
    assert prior.s0_squared == pytest.approx(s0_sq, rel=0.1)


def test_no_excess_variability_gives_infinite_prior_df():
    s2 = np.full(50, 2.0)

    post, prior = squeeze_var(s2, 4)

    assert np.isinf(prior.d0)
    assert prior.s0_squared == pytest.approx(2.0)
    np.testing.assert_allclose(post, 2.0)


def test_posterior_variances_lie_between_sample_and_prior(rng):
    s2 = 0.8 * (rng.chisquare(3, 3000) / 3) / (rng.chisquare(10, 3000) / 10)

    post, prior = squeeze_var(s2, 3)

    assert np.isfinite(prior.d0)
    lo = np.minimum(s2, prior.s0_squared)
    hi = np.maximum(s2, prior.s0_squared)
    assert np.all(post >= lo - 1e-12)
    assert np.all(post <= hi + 1e-12)
    # shrinkage pulls the spread in
    assert np.var(post) < np.var(s2)


def test_squeeze_var_uses_a_given_prior():
    prior = PriorVariance(s0_squared=1.0, d0=4.0)

    post, used = squeeze_var([3.0, 0.0], 4, prior=prior)

    assert used is prior
    np.testing.assert_allclose(post, [2.0, 0.5])


def test_fit_f_dist_needs_two_variances():
    with pytest.raises(ValueError):
        fit_f_dist([1.0], 3)
    with pytest.raises(ValueError):
        fit_f_dist([0.0, 0.0, 0.0], 3)


def test_moderated_t_ranks_differential_genes_first(expression):
    df, groups, n_de = expression

    table = moderated_t_test(df, groups)

    assert len(table) == len(df)
    assert np.all(np.diff(table["p_value"].to_numpy()) >= 0)
    top = set(table.index[:n_de])
    truth = {f"gene{i}" for i in range(n_de)}
    assert len(top & truth) >= 15
    # treated is the second group, so the effect is positive
    assert (table.loc[sorted(truth), "log_fc"] > 0).all()
    assert table.attrs["contrast"] == "trt - ctrl"


def test_moderated_t_degrees_of_freedom_and_ordinary_statistics(expression):
    df, groups, _ = expression

    table = moderated_t_test(df, groups).loc[df.index]
    plain = HypothesisTesting.genewise_t(df, groups, equal_var=True)

    d = table.attrs["df_residual"]
    assert d == 6
    assert table.attrs["df_total"] == pytest.approx(min(d + table.attrs["d0"], d * len(df)))
    np.testing.assert_allclose(table["t_ordinary"], plain["t"])
    np.testing.assert_allclose(table["p_value_ordinary"], plain["p_value"])

    expected_p = 2 * stats.t.sf(np.abs(table["t"]), table.attrs["df_total"])
    np.testing.assert_allclose(table["p_value"], expected_p)
    assert (table["adj_p_value"] >= table["p_value"] - 1e-15).all()


def test_moderated_t_accepts_plain_arrays(rng):
    Y = rng.normal(size=(30, 6))
    table = moderated_t_test(Y, ["a", "a", "a", "b", "b", "b"])
    assert isinstance(table, pd.DataFrame)
    assert sorted(table.index) == list(range(30))


@pytest.mark.parametrize(
    "groups",
    [["a", "a", "b", "b", "c", "c"], ["a", "a", "a", "a", "a", "a"], ["a", "b", "a"]],
)
def test_moderated_t_needs_exactly_two_groups(rng, groups):
    with pytest.raises(ValueError):
        moderated_t_test(rng.normal(size=(10, 6)), groups)
