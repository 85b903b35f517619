"""Tests for missing value imputation."""

import warnings

import numpy as np
import pandas as pd
import pytest

from pomakit.core.biomatrix import BioMatrix
from pomakit.core.quality import QualityFlag
from pomakit.errors import InvalidArgumentError, MissingArgumentError
from pomakit.quality.imputation import Imputer, impute, remove_sparse_features


def _matrix(data, groups):
    sample_ids = pd.Index([f"S{i}" for i in range(len(groups))])
    return BioMatrix(
        data=np.asarray(data, dtype=float),
        feature_ids=pd.Index([f"M{i}" for i in range(len(data))]),
        sample_ids=sample_ids,
        sample_metadata=pd.DataFrame({"group": groups}, index=sample_ids),
    )


@pytest.fixture
def simple():
    return _matrix(
        [[2.0, np.nan, 6.0, 8.0],
         [1.0, 3.0, 5.0, 7.0]],
        ["A", "A", "B", "B"],
    )


class TestStatisticMethods:
    @pytest.mark.parametrize("method,expected", [
        ("none", 0.0),
        ("half_min", 1.0),
        ("median", 6.0),
        ("mean", 16.0 / 3),
        ("min", 2.0),
    ])
    def test_fill_value(self, simple, method, expected):
        result = impute(simple, method=method, remove_na=False)
        assert result.data[0, 1] == pytest.approx(expected)
        np.testing.assert_array_equal(result.data[1], simple.data[1])

    def test_flags(self, simple):
        result = impute(simple, method="min", remove_na=False)
        flag = QualityFlag(int(result.quality_flags[0, 1]))
        assert QualityFlag.IMPUTED in flag
        assert QualityFlag.MISSING_ORIGINAL in flag
        assert result.quality_flags[0, 0] == QualityFlag.ORIGINAL

    def test_input_unchanged(self, simple):
        impute(simple, method="mean", remove_na=False)
        assert np.isnan(simple.data[0, 1])


class TestZerosAsNa:
    def test_zeros_are_imputed_and_flagged(self):
        m = _matrix([[0.0, 4.0, 6.0, 8.0], [1.0, 2.0, 3.0, 4.0]], ["A", "A", "B", "B"])
        result = impute(m, method="min", zeros_as_na=True, remove_na=False)

        assert result.data[0, 0] == 4.0
        flag = QualityFlag(int(result.quality_flags[0, 0]))
        assert QualityFlag.ZERO_AS_MISSING in flag
        assert QualityFlag.IMPUTED in flag
        assert QualityFlag.MISSING_ORIGINAL not in flag


class TestRemoveSparse:
    def test_feature_sparse_in_every_group_removed(self):
        m = _matrix(
            [[np.nan, np.nan, np.nan, 1.0],   # 100% in A, 50% in B
             [np.nan, 2.0, 3.0, 4.0],         # 50% in A, 0% in B
             [1.0, 2.0, 3.0, 4.0]],
            ["A", "A", "B", "B"],
        )
        kept = remove_sparse_features(m, cutoff=20)
        assert list(kept.feature_ids) == ["M1", "M2"]

    def test_remove_na_in_imputer(self, sparse_matrix):
        data = sparse_matrix.data.copy()
        data[0, :] = np.nan
        m = sparse_matrix.with_data(data)

        result = impute(m, method="median", remove_na=True, cutoff=20)
        assert "M000" not in result.feature_ids
        assert not np.isnan(result.data).any()

    def test_sparse_features_kept_by_default(self):
        m = _matrix(
            [[np.nan, np.nan, np.nan, np.nan, np.nan, 1.0],
             [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
             [2.0, 3.0, 4.0, 5.0, 6.0, 7.0],
             [6.0, 5.0, 4.0, 3.0, 2.0, 1.0]],
            ["A", "A", "A", "B", "B", "B"],
        )
        result = impute(m, method="knn")
        assert result.shape == (4, 6)
        assert list(result.feature_ids) == list(m.feature_ids)
        assert not np.isnan(result.data).any()
        assert Imputer().remove_na is False


class TestModelMethods:
    def test_knn_fills_everything(self, sparse_matrix):
        result = impute(sparse_matrix, method="knn", remove_na=False)
        assert result.shape == sparse_matrix.shape
        assert not np.isnan(result.data).any()
        observed = ~np.isnan(sparse_matrix.data)
        np.testing.assert_array_equal(result.data[observed], sparse_matrix.data[observed])

    def test_knn_values_within_observed_range(self, sparse_matrix):
        result = impute(sparse_matrix, method="knn", n_neighbors=5, remove_na=False)
        missing = np.isnan(sparse_matrix.data)
        lo, hi = np.nanmin(sparse_matrix.data), np.nanmax(sparse_matrix.data)
        assert np.all(result.data[missing] >= lo)
        assert np.all(result.data[missing] <= hi)

    def test_rf_is_seeded(self):
        from conftest import generate_metabolite_matrix

        m = generate_metabolite_matrix(n_features=8, n_per_group=5, missing_fraction=0.1, seed=3)
        a = impute(m, method="rf", remove_na=False, random_state=1)
        b = impute(m, method="rf", remove_na=False, random_state=1)
        assert not np.isnan(a.data).any()
        np.testing.assert_allclose(a.data, b.data)


class TestArguments:
    def test_missing_method_warns_and_uses_knn(self, sparse_matrix):
        with pytest.warns(UserWarning, match="knn will be used"):
            result = impute(sparse_matrix, remove_na=False)
        assert not np.isnan(result.data).any()

    def test_unknown_method(self, sparse_matrix):
        with pytest.raises(InvalidArgumentError, match="method"):
            impute(sparse_matrix, method="nonsense")

    def test_missing_data(self):
        with pytest.raises(MissingArgumentError):
            impute(None, method="min")

    def test_not_a_matrix(self):
        with pytest.raises(TypeError):
            impute(pd.DataFrame({"a": [1.0]}), method="min")

    def test_cutoff_range(self):
        with pytest.raises(InvalidArgumentError, match="cutoff"):
            Imputer(method="min", cutoff=120)

    def test_nothing_to_impute_warns(self, matrix):
        with pytest.warns(UserWarning, match="No missing values"):
            result = impute(matrix, method="min")
        np.testing.assert_array_equal(result.data, matrix.data)

    def test_infinite_values_rejected(self, simple):
        data = simple.data.copy()
        data[1, 0] = np.inf
        with pytest.raises(ValueError, match="infinite"):
            impute(simple.with_data(data), method="min", remove_na=False)

    def test_transform_params(self):
        imputer = Imputer(method="half_min", cutoff=30)
        assert imputer.params["method"] == "half_min"
        assert imputer.params["cutoff"] == 30
        assert repr(imputer).startswith("Imputer(")


def test_no_warning_for_explicit_method(simple):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        impute(simple, method="mean", remove_na=False)
