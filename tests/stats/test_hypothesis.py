import numpy as np
import pandas as pd
import pytest
from scipy import stats

from hdstats.stats.hypothesis import HypothesisTesting


def test_two_sample_t_welch(rng):
    a = rng.normal(0.0, 1.0, size=30)
    b = rng.normal(1.0, 2.0, size=25)

    result = HypothesisTesting.two_sample_t(a, b)
    expected = stats.ttest_ind(a, b, equal_var=False)

    assert result["test_type"] == "welch"
    assert result["t_statistic"] == pytest.approx(expected.statistic)
    assert result["p_value"] == pytest.approx(expected.pvalue)
    assert result["mean_difference"] == pytest.approx(a.mean() - b.mean())
    assert isinstance(result["significant_at_05"], bool)


def test_two_sample_t_pooled_drops_missing():
    a = np.array([1.0, 2.0, np.nan, 3.0])
    b = np.array([4.0, 5.0, 6.0])

    result = HypothesisTesting.two_sample_t(a, b, equal_var=True)

    assert result["n1"] == 3
    assert result["df"] == pytest.approx(4.0)
    assert result["cohens_d"] == pytest.approx(-3.0)
    assert result["effect_size_interpretation"] == "large"


def test_two_sample_t_needs_two_per_group():
    with pytest.raises(ValueError):
        HypothesisTesting.two_sample_t([1.0], [2.0, 3.0])


def test_genewise_t_matches_scipy_row_by_row(expression):
    df, groups, _ = expression

    table = HypothesisTesting.genewise_t(df, groups)

    assert list(table.index) == list(df.index)
    row = df.iloc[0].to_numpy()
    ref = stats.ttest_ind(row[4:], row[:4])
    assert table["t"].iloc[0] == pytest.approx(ref.statistic)
    assert table["p_value"].iloc[0] == pytest.approx(ref.pvalue)
    assert table["mean_difference"].iloc[0] == pytest.approx(row[4:].mean() - row[:4].mean())


def test_genewise_t_validates_groups():
    Y = pd.DataFrame(np.ones((3, 4)))
    with pytest.raises(ValueError):
        HypothesisTesting.genewise_t(Y, ["a", "b", "c", "a"])
    with pytest.raises(ValueError):
        HypothesisTesting.genewise_t(Y, ["a", "b"])
