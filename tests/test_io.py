"""Tests for CSV loading and writing."""

import numpy as np
import pandas as pd
import pytest

from pomakit.core.quality import QualityFlag
from pomakit.io import load_csv_matrix, load_target_features, write_csv_matrix, write_sample_metadata
from pomakit.quality.imputation import impute


@pytest.fixture
def csv_files(tmp_path):
    matrix_path = tmp_path / "intensities.csv"
    matrix_path.write_text(
        ",S1,S2,S3,S4\n"
        "glucose,5.1,4.8,6.0,6.2\n"
        "lactate,1.2,,1.9,2.0\n"
    )
    metadata_path = tmp_path / "samples.csv"
    metadata_path.write_text(
        "sample,condition,age\n"
        "S4,Treated,50\n"
        "S3,Treated,41\n"
        "S2,Control,38\n"
        "S1,Control,62\n"
    )
    return matrix_path, metadata_path


class TestLoadCsvMatrix:
    def test_load_with_metadata(self, csv_files):
        with pytest.warns(UserWarning, match="missing values"):
            m = load_csv_matrix(*csv_files)

        assert m.shape == (2, 4)
        assert list(m.feature_ids) == ["glucose", "lactate"]
        # metadata realigned to matrix column order
        assert m.groups.tolist() == ["Control", "Control", "Treated", "Treated"]
        assert np.isnan(m.data[1, 1])
        assert np.all(m.quality_flags == QualityFlag.ORIGINAL)

    def test_load_without_metadata(self, csv_files):
        with pytest.warns(UserWarning):
            m = load_csv_matrix(csv_files[0])
        assert m.sample_metadata.shape == (4, 0)

    def test_metadata_must_cover_samples(self, csv_files, tmp_path):
        partial = tmp_path / "partial.csv"
        partial.write_text("sample,condition\nS1,Control\n")
        with pytest.warns(UserWarning):
            with pytest.raises(ValueError, match="no row for 3 samples"):
                load_csv_matrix(csv_files[0], partial)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_csv_matrix(tmp_path / "nope.csv")

    def test_non_numeric(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text(",S1,S2\nglucose,1.0,high\n")
        with pytest.raises(ValueError, match="non-numeric"):
            load_csv_matrix(path)

    def test_duplicate_features(self, tmp_path):
        path = tmp_path / "dup.csv"
        path.write_text(",S1,S2\nglucose,1.0,2.0\nglucose,3.0,4.0\n")
        with pytest.raises(ValueError, match="duplicate feature IDs"):
            load_csv_matrix(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(ValueError, match="empty"):
            load_csv_matrix(path)


def test_load_target_features(tmp_path):
    target = tmp_path / "target.csv"
    target.write_text("id,group\na,X\na,Y\nb,Y\n")
    features = tmp_path / "features.csv"
    features.write_text("m1,m2\n1.0,2.0\n3.0,4.0\n5.0,6.0\n")

    m = load_target_features(target, features)
    assert list(m.sample_ids) == ["a", "a.1", "b"]
    assert list(m.feature_ids) == ["m1", "m2"]
    np.testing.assert_array_equal(m.data[0], [1.0, 3.0, 5.0])


class TestWriters:
    def test_write_and_reload(self, csv_files, tmp_path):
        with pytest.warns(UserWarning):
            m = load_csv_matrix(*csv_files)
        imputed = impute(m, method="min", remove_na=False)

        paths = write_csv_matrix(imputed, tmp_path / "out" / "study")
        assert [p.name for p in paths] == ["study.data.csv", "study.flags.csv"]

        reloaded = load_csv_matrix(paths[0])
        np.testing.assert_allclose(reloaded.data, imputed.data)

        flags = pd.read_csv(paths[1], index_col=0)
        expected = int(QualityFlag.MISSING_ORIGINAL | QualityFlag.IMPUTED)
        assert flags.loc["lactate", "S2"] == expected
        assert flags.loc["glucose", "S1"] == 0

    def test_data_only(self, matrix, tmp_path):
        paths = write_csv_matrix(matrix, tmp_path / "plain", write_quality_flags=False)
        assert len(paths) == 1
        assert not (tmp_path / "plain.flags.csv").exists()

    def test_type_checked(self, tmp_path):
        with pytest.raises(TypeError):
            write_csv_matrix(pd.DataFrame({"a": [1]}), tmp_path / "x")

    def test_sample_metadata(self, matrix, tmp_path):
        path = write_sample_metadata(matrix, tmp_path / "samples.csv")
        frame = pd.read_csv(path)
        assert list(frame.columns) == ["sample_id", "group", "age"]
        assert frame["sample_id"].tolist() == list(matrix.sample_ids)
