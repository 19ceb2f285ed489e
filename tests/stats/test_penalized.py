#!filepath: tests/stats/test_penalized.py
import numpy as np
import pytest

from hdstats.config import Settings
from hdstats.errors import ConvergenceError, RankDeficientError
from hdstats.stats.penalized import (
    fit_path,
    lambda_max,
    make_penalty_path,
    ridge_path,
    validate_path,
)


def _closed_form_ridge(X, y, lam):
    p = X.shape[1]
    return np.linalg.solve(X.T @ X + lam * np.eye(p), X.T @ y)


# ---------------------------------------------------------------------------
# Ridge (alpha = 0)
# ---------------------------------------------------------------------------

def test_ridge_matches_closed_form_for_every_lambda(rng):
    X = rng.normal(size=(30, 5))
    y = rng.normal(size=30)
    lambdas = [50.0, 10.0, 1.0, 0.1]

    fit = fit_path(X, y, alpha=0.0, lambdas=lambdas, standardize=False, fit_intercept=False)

    for i, lam in enumerate(lambdas):
        np.testing.assert_allclose(fit.coefs[i], _closed_form_ridge(X, y, lam), atol=1e-9)
    assert np.all(fit.intercepts == 0)
    assert fit.converged.all()


def test_ridge_with_intercept_is_closed_form_on_centered_data(rng):
    X = rng.normal(loc=2.0, size=(40, 4))
    y = 5.0 + rng.normal(size=40)

    fit = fit_path(X, y, alpha=0.0, lambdas=[3.0], standardize=False, fit_intercept=True)

    Xc, yc = X - X.mean(axis=0), y - y.mean()
    beta = _closed_form_ridge(Xc, yc, 3.0)
    np.testing.assert_allclose(fit.coefs[0], beta, atol=1e-9)
    assert fit.intercepts[0] == pytest.approx(y.mean() - X.mean(axis=0) @ beta)


def test_ridge_converges_to_ols_as_lambda_vanishes(rng):
    X = rng.normal(size=(50, 6))
    y = X @ rng.normal(size=6) + rng.normal(size=50)
    ols = np.linalg.lstsq(X, y, rcond=None)[0]

    fit = fit_path(X, y, alpha=0.0, lambdas=[1.0, 1e-3, 1e-8, 0.0],
                   standardize=False, fit_intercept=False)

    gaps = [np.linalg.norm(c - ols) for c in fit.coefs]
    assert gaps[0] > gaps[1] > gaps[2]
    np.testing.assert_allclose(fit.coefs[-1], ols, atol=1e-10)


def test_ridge_zero_lambda_on_wide_design_is_refused(rng):
    X = rng.normal(size=(10, 25))
    y = rng.normal(size=10)

    with pytest.raises(RankDeficientError):
        ridge_path(X, y, [1.0, 0.0])

    # any positive penalty is fine
    coefs = ridge_path(X, y, [1.0, 0.01])
    assert coefs.shape == (2, 25)
    assert np.all(np.isfinite(coefs))


@pytest.mark.parametrize("alpha", [1.0, 0.5])
@pytest.mark.parametrize("standardize", [False, True])
def test_unpenalized_end_of_l1_path_on_wide_design_is_refused(rng, alpha, standardize):
    X = rng.normal(size=(10, 25))
    y = rng.normal(size=10)

    with pytest.raises(RankDeficientError):
        fit_path(X, y, alpha=alpha, lambdas=[1.0, 0.0], standardize=standardize)

    fit = fit_path(X, y, alpha=alpha, lambdas=[1.0, 0.1], standardize=standardize)
    assert fit.coefs.shape == (2, 25)


def test_unpenalized_end_of_l1_path_on_tall_design_is_least_squares(rng):
    X = rng.normal(size=(60, 4))
    y = X @ np.array([1.0, -1.0, 0.5, 0.0]) + 0.1 * rng.normal(size=60)
    ols = np.linalg.lstsq(X, y, rcond=None)[0]

    fit = fit_path(X, y, alpha=1.0, lambdas=[1.0, 0.0], standardize=False, fit_intercept=False)

    np.testing.assert_allclose(fit.coefs[-1], ols, atol=1e-5)


# ---------------------------------------------------------------------------
# Lasso / Elastic-Net (alpha > 0)
# ---------------------------------------------------------------------------

def test_lasso_orthonormal_design_is_soft_threshold(rng):
    Q, _ = np.linalg.qr(rng.normal(size=(60, 6)))
    y = Q @ np.array([3.0, -2.0, 1.0, 0.5, 0.0, 0.0]) + 0.1 * rng.normal(size=60)
    b_ols = Q.T @ y
    lambdas = np.array([6.0, 4.0, 2.0, 1.0, 0.2])

    fit = fit_path(Q, y, alpha=1.0, lambdas=lambdas, standardize=False, fit_intercept=False)

    for i, lam in enumerate(lambdas):
        expected = np.sign(b_ols) * np.maximum(np.abs(b_ols) - lam / 2.0, 0.0)
        np.testing.assert_allclose(fit.coefs[i], expected, atol=1e-6)


def test_elastic_net_satisfies_kkt_conditions(sparse_regression):
    X, y, _ = sparse_regression
    alpha, lam = 0.5, 20.0

    fit = fit_path(X, y, alpha=alpha, lambdas=[lam], standardize=False, fit_intercept=False)
    beta = fit.coefs[0]
    grad = 2.0 * X.T @ (y - X @ beta) - 2.0 * lam * (1 - alpha) * beta

    active = beta != 0
    assert active.any()
    np.testing.assert_allclose(grad[active], lam * alpha * np.sign(beta[active]), atol=1e-2)
    assert np.all(np.abs(grad[~active]) <= lam * alpha + 1e-2)


@pytest.mark.parametrize("alpha", [1.0, 0.5, 0.1])
def test_coefficients_are_zero_above_lambda_max(sparse_regression, alpha):
    X, y, _ = sparse_regression
    lmax = lambda_max(X, y, alpha=alpha)

    fit = fit_path(X, y, alpha=alpha, lambdas=[lmax * 1.01, lmax * 0.5])

    np.testing.assert_array_equal(fit.coefs[0], np.zeros(X.shape[1]))
    assert np.count_nonzero(fit.coefs[1]) > 0
    assert fit.intercepts[0] == pytest.approx(y.mean())


def test_default_path_starts_at_all_zero_and_is_descending(sparse_regression, cfg):
    X, y, _ = sparse_regression

    fit = fit_path(X, y, alpha=1.0, cfg=cfg)

    assert fit.lambdas.size == cfg.n_lambdas
    assert np.all(np.diff(fit.lambdas) < 0)
    assert fit.lambdas[-1] == pytest.approx(fit.lambdas[0] * 1e-4)
    np.testing.assert_allclose(fit.coefs[0], 0.0, atol=1e-10)


def test_shrinkage_monotonicity(sparse_regression):
    X, y, _ = sparse_regression

    lasso = fit_path(X, y, alpha=1.0, n_lambdas=20, lambda_min_ratio=1e-2, standardize=False)
    l1 = np.abs(lasso.coefs).sum(axis=1)
    # lambdas descend, so norms must not decrease along the path
    assert np.all(np.diff(l1) >= -1e-6)

    ridge = fit_path(X, y, alpha=0.0, n_lambdas=40, standardize=False)
    l2 = np.linalg.norm(ridge.coefs, axis=1)
    assert np.all(np.diff(l2) >= -1e-10)


def test_coefficients_keep_feature_dimension_and_predict(sparse_regression):
    X, y, _ = sparse_regression
    names = [f"g{j}" for j in range(X.shape[1])]

    fit = fit_path(X, y, alpha=1.0, n_lambdas=15, feature_names=names)

    assert fit.coefs.shape == (15, X.shape[1])
    assert fit.df[0] == 0
    preds = fit.predict(X[:5])
    assert preds.shape == (5, 15)
    np.testing.assert_allclose(preds[:, 3], X[:5] @ fit.coef_at(3) + fit.intercepts[3])

    frame = fit.to_frame()
    assert list(frame.columns[:2]) == ["lambda", "intercept"]
    assert list(frame.columns[2:]) == names

    summary = fit.summary(index=14)
    assert set(summary["coefficients"]) == set(names)


def test_standardized_fit_reports_original_scale(rng):
    X = rng.normal(size=(100, 3)) * np.array([1.0, 10.0, 0.1])
    y = X @ np.array([1.0, 0.2, 5.0]) + 0.01 * rng.normal(size=100)

    fit = fit_path(X, y, alpha=1.0, lambdas=[1e-3])

    np.testing.assert_allclose(fit.coefs[0], [1.0, 0.2, 5.0], atol=0.05)


# ---------------------------------------------------------------------------
# Path validation and convergence reporting
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "bad",
    [[], [1.0, 2.0], [1.0, 1.0], [1.0, -0.5], [np.inf, 1.0], [np.nan]],
)
def test_validate_path_rejects_bad_paths(bad):
    with pytest.raises(ValueError):
        validate_path(bad)


def test_validate_path_allows_trailing_zero():
    np.testing.assert_array_equal(validate_path([2.0, 1.0, 0.0]), [2.0, 1.0, 0.0])


def test_penalty_path_ratio_depends_on_shape(rng):
    X_tall, y_tall = rng.normal(size=(50, 5)), rng.normal(size=50)
    X_wide, y_wide = rng.normal(size=(20, 50)), rng.normal(size=20)

    tall = make_penalty_path(X_tall, y_tall, n_lambdas=10)
    wide = make_penalty_path(X_wide, y_wide, n_lambdas=10)

    assert tall[-1] / tall[0] == pytest.approx(1e-4)
    assert wide[-1] / wide[0] == pytest.approx(1e-2)


def test_constant_response_has_no_path(rng):
    from hdstats.errors import ModelingError

    with pytest.raises(ModelingError):
        make_penalty_path(rng.normal(size=(20, 3)), np.ones(20))


def test_non_convergence_is_flagged_or_raised(rng):
    X = rng.normal(size=(40, 30))
    X[:, 1] = X[:, 0] + 1e-3 * rng.normal(size=40)
    y = X[:, 0] + rng.normal(size=40)

    loose = Settings(enet_max_iter=1, enet_tol=1e-12)
    fit = fit_path(X, y, alpha=0.5, n_lambdas=10, cfg=loose)
    assert not fit.converged.all()
    assert fit.coefs.shape == (10, 30)

    strict = Settings(enet_max_iter=1, enet_tol=1e-12, strict_convergence=True)
    with pytest.raises(ConvergenceError):
        fit_path(X, y, alpha=0.5, n_lambdas=10, cfg=strict)


def test_rejects_mismatched_or_non_finite_input(rng):
    X = rng.normal(size=(10, 2))
    with pytest.raises(ValueError):
        fit_path(X, rng.normal(size=9))

    y = rng.normal(size=10)
    y[3] = np.nan
    with pytest.raises(ValueError):
        fit_path(X, y)

    with pytest.raises(ValueError):
        fit_path(X, rng.normal(size=10), alpha=1.5)
