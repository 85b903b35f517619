"""Tests for the BioMatrix container."""

import numpy as np
import pandas as pd
import pytest

from pomakit.core.biomatrix import BioMatrix, make_unique
from pomakit.core.quality import QualityFlag
from pomakit.errors import InvalidArgumentError, MissingArgumentError


def _tiny():
    sample_ids = pd.Index(["S1", "S2", "S3"])
    return BioMatrix(
        data=np.array([[1.0, 2.0, 3.0], [4.0, np.nan, 6.0]]),
        feature_ids=pd.Index(["glucose", "lactate"]),
        sample_ids=sample_ids,
        sample_metadata=pd.DataFrame({"condition": ["A", "A", "B"]}, index=sample_ids),
    )


class TestConstruction:
    def test_defaults_flags_to_original(self):
        m = _tiny()
        assert m.quality_flags.shape == (2, 3)
        assert np.all(m.quality_flags == QualityFlag.ORIGINAL)

    def test_rejects_misaligned_metadata(self):
        sample_ids = pd.Index(["S1", "S2"])
        with pytest.raises(ValueError, match="sample_metadata.index"):
            BioMatrix(
                data=np.ones((1, 2)),
                feature_ids=pd.Index(["x"]),
                sample_ids=sample_ids,
                sample_metadata=pd.DataFrame({"g": ["A", "B"]}, index=["S2", "S1"]),
            )

    def test_rejects_duplicate_features(self):
        sample_ids = pd.Index(["S1"])
        with pytest.raises(ValueError, match="unique"):
            BioMatrix(
                data=np.ones((2, 1)),
                feature_ids=pd.Index(["x", "x"]),
                sample_ids=sample_ids,
                sample_metadata=pd.DataFrame(index=sample_ids),
            )

    def test_rejects_wrong_types(self):
        with pytest.raises(TypeError):
            BioMatrix(
                data=[[1.0]],
                feature_ids=pd.Index(["x"]),
                sample_ids=pd.Index(["S1"]),
                sample_metadata=pd.DataFrame(index=["S1"]),
            )


class TestGroups:
    def test_first_metadata_column_is_group(self):
        m = _tiny()
        assert m.group_column == "condition"
        assert m.groups.tolist() == ["A", "A", "B"]
        assert list(m.groups.index) == ["S1", "S2", "S3"]

    def test_group_column_requires_metadata(self):
        m = _tiny()
        bare = BioMatrix(m.data, m.feature_ids, m.sample_ids, pd.DataFrame(index=m.sample_ids))
        with pytest.raises(MissingArgumentError, match="no columns"):
            bare.group_column
        with pytest.raises(MissingArgumentError, match="sample group"):
            bare.groups

    def test_feature_lookup(self):
        m = _tiny()
        assert m.has_feature("glucose")
        assert m.has_feature(["glucose", "lactate"])
        assert not m.has_feature(["glucose", "urea"])
        assert m.missing_features(["urea", "glucose"]) == ["urea"]


class TestSelection:
    def test_select_samples_keeps_metadata_aligned(self):
        m = _tiny()
        sub = m.select_samples(np.array([False, True, True]))
        assert list(sub.sample_ids) == ["S2", "S3"]
        assert sub.groups.tolist() == ["A", "B"]
        assert sub.n_features == 2

    def test_select_features(self):
        m = _tiny()
        sub = m.select_features(pd.Series([False, True]))
        assert list(sub.feature_ids) == ["lactate"]
        assert sub.n_samples == 3

    def test_mask_length_checked(self):
        with pytest.raises(ValueError, match="mask length"):
            _tiny().select_features([True])

    def test_operations_return_new_instances(self):
        m = _tiny()
        other = m.with_data(m.data * 2)
        assert other is not m
        np.testing.assert_array_equal(m.data[0], [1.0, 2.0, 3.0])

    def test_deep_copy_is_independent(self):
        m = _tiny()
        c = m.copy(deep=True)
        c.data[0, 0] = 99.0
        assert m.data[0, 0] == 1.0


class TestTables:
    def test_to_target_frame_layout(self):
        frame = _tiny().to_target_frame()
        assert list(frame.columns) == ["ID", "Group", "glucose", "lactate"]
        assert frame["ID"].tolist() == ["S1", "S2", "S3"]
        assert frame["Group"].tolist() == ["A", "A", "B"]
        assert np.isnan(frame.loc[1, "lactate"])

    def test_to_target_frame_rejects_reserved_feature_ids(self):
        m = _tiny()
        clash = BioMatrix(m.data, pd.Index(["Group", "lactate"]), m.sample_ids, m.sample_metadata)
        with pytest.raises(InvalidArgumentError, match="Group"):
            clash.to_target_frame()

    def test_from_target_features(self):
        target = pd.DataFrame({"id": ["a", "b", "c"], "group": ["X", "Y", "Y"], "bmi": [20, 25, 30]})
        features = pd.DataFrame({"m1": [1.0, 2.0, 3.0], "m2": [4.0, 5.0, 6.0]})
        m = BioMatrix.from_target_features(target, features)

        assert m.shape == (2, 3)
        assert list(m.sample_ids) == ["a", "b", "c"]
        assert list(m.sample_metadata.columns) == ["group", "bmi"]
        np.testing.assert_array_equal(m.data[1], [4.0, 5.0, 6.0])

    def test_from_target_features_makes_ids_unique(self):
        target = pd.DataFrame({"id": ["a", "a", "b"], "group": ["X", "Y", "Y"]})
        features = pd.DataFrame({"m1": [1.0, 2.0, 3.0]})
        m = BioMatrix.from_target_features(target, features)
        assert list(m.sample_ids) == ["a", "a.1", "b"]

    def test_from_target_features_row_mismatch(self):
        target = pd.DataFrame({"id": ["a", "b"], "group": ["X", "Y"]})
        features = pd.DataFrame({"m1": [1.0, 2.0, 3.0]})
        with pytest.raises(ValueError, match="one row per sample"):
            BioMatrix.from_target_features(target, features)


def test_make_unique():
    assert make_unique(["a", "b", "a", "a"]) == ["a", "b", "a.1", "a.2"]
    assert make_unique(["a", "a.1", "a"]) == ["a", "a.1", "a.2"]
