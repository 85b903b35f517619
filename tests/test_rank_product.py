"""Tests for the rank product engine."""

import numpy as np
import pytest

from pomakit.errors import GroupMismatchError, InvalidArgumentError
from pomakit.stats.rank_product import DIRECTIONS, rank_products, top_features

UP, DOWN = DIRECTIONS


@pytest.fixture
def shifted():
    """40 features × 12 samples (log scale); features 0-4 higher in class 1."""
    rng = np.random.default_rng(0)
    data = rng.normal(10.0, 1.0, size=(40, 12))
    data[:5, 6:] += 4.0
    classes = np.array([0] * 6 + [1] * 6)
    return data, classes


class TestStatistic:
    def test_hand_computed_rank_product(self):
        # 3 features, one sample per class: a single comparison
        data = np.array([[1.0, 4.0], [2.0, 2.0], [3.0, 1.0]])
        result = rank_products(data, [0, 1], num_perm=10)

        # class0 - class1 = [-3, 0, 2]; ascending ranks 1, 2, 3
        np.testing.assert_allclose(result.statistic[UP], [1.0, 2.0, 3.0])
        np.testing.assert_allclose(result.statistic[DOWN], [3.0, 2.0, 1.0])
        assert result.n_comparisons == 1

    def test_rank_sum(self):
        data = np.array([[1.0, 4.0, 1.0], [2.0, 2.0, 2.0], [3.0, 1.0, 5.0]])
        result = rank_products(data, [0, 1, 1], num_perm=10, calculate_product=False)
        # comparisons: [-3, 0, 2] and [0, 0, -2]; ranks [1,2,3] and [2.5,2.5,1]
        np.testing.assert_allclose(result.statistic[UP], [3.5, 4.5, 4.0])
        assert result.statistic_name == "RS"

    def test_all_pairs_by_default(self, shifted):
        data, classes = shifted
        result = rank_products(data, classes, num_perm=5)
        assert result.n_comparisons == 36

    def test_random_pairs(self, shifted):
        data, classes = shifted
        result = rank_products(data, classes, random_pairs=10, num_perm=5)
        assert result.n_comparisons == 10

    def test_fold_change_logged(self, shifted):
        data, classes = shifted
        result = rank_products(data, classes, num_perm=5)
        expected = data[:, :6].mean(axis=1) - data[:, 6:].mean(axis=1)
        np.testing.assert_allclose(result.average_fold_change, expected)

    def test_fold_change_unlogged(self):
        data = np.array([[2.0, 4.0, 1.0, 1.0]])
        result = rank_products(data, [0, 0, 1, 1], logged=False, num_perm=5)
        assert result.average_fold_change.iloc[0] == pytest.approx(3.0)

    def test_missing_values(self, shifted):
        data, classes = shifted
        data = data.copy()
        data[10, 0] = np.nan
        data[11, :] = np.nan
        result = rank_products(data, classes, num_perm=20)
        assert np.isfinite(result.statistic[UP].iloc[10])
        assert np.isnan(result.statistic[UP].iloc[11])
        assert np.isnan(result.pfp[UP].iloc[11])

        strict = rank_products(data, classes, num_perm=20, na_rm=False)
        assert np.isnan(strict.statistic[UP].iloc[10])


class TestSignificance:
    def test_shifted_features_detected(self, shifted):
        data, classes = shifted
        result = rank_products(data, classes, num_perm=50)

        # class0 - class1 is strongly negative for features 0-4
        up, down = top_features(result, cutoff=0.05)
        assert set(up.index) >= {f"feature_{i}" for i in range(5)}
        assert len(up) < 10
        assert not set(down.index) & {f"feature_{i}" for i in range(5)}

    def test_pfp_bounded(self, shifted):
        data, classes = shifted
        result = rank_products(data, classes, num_perm=20)
        values = result.pfp.to_numpy()
        assert np.all((values >= 0) & (values <= 1))
        pvals = result.pvalue.to_numpy()
        assert np.all((pvals >= 0) & (pvals <= 1))

    def test_deterministic_with_seed(self, shifted):
        data, classes = shifted
        a = rank_products(data, classes, num_perm=20, seed=123)
        b = rank_products(data, classes, num_perm=20, seed=123)
        assert a.pfp.equals(b.pfp)
        assert a.pvalue.equals(b.pvalue)

    def test_top_features_table(self, shifted):
        data, classes = shifted
        result = rank_products(data, classes, num_perm=20, class_labels=("ctl", "trt"))
        up, _ = top_features(result, cutoff=0.05, logbase=2)

        assert list(up.columns) == ["RP/Rsum", "FC: ctl/trt", "pfp", "P.value"]
        assert up["RP/Rsum"].is_monotonic_increasing
        assert (up["pfp"] < 0.05).all()
        # ctl is about 4 log2 units lower for the shifted features
        shifted_ids = [f"feature_{i}" for i in range(5)]
        assert (up.loc[shifted_ids, "FC: ctl/trt"] < 0.25).all()

    def test_pval_method(self, shifted):
        data, classes = shifted
        result = rank_products(data, classes, num_perm=20)
        up_pfp, _ = top_features(result, cutoff=0.05, method="pfp")
        up_pval, _ = top_features(result, cutoff=0.05, method="pval")
        assert (up_pval["P.value"] < 0.05).all()
        assert set(up_pfp.index) <= set(up_pval.index)


class TestArguments:
    def test_single_class(self):
        with pytest.raises(GroupMismatchError):
            rank_products(np.ones((3, 4)), [0, 0, 0, 0])

    def test_class_codes(self):
        with pytest.raises(InvalidArgumentError, match="coded"):
            rank_products(np.ones((3, 4)), [0, 1, 2, 1])

    def test_length_mismatch(self):
        with pytest.raises(InvalidArgumentError, match="classes length"):
            rank_products(np.ones((3, 4)), [0, 1])

    def test_num_perm(self):
        with pytest.raises(InvalidArgumentError, match="num_perm"):
            rank_products(np.ones((3, 4)), [0, 0, 1, 1], num_perm=0)

    def test_top_features_method(self, shifted):
        data, classes = shifted
        result = rank_products(data, classes, num_perm=5)
        with pytest.raises(InvalidArgumentError):
            top_features(result, method="fdr")
