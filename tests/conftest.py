"""
Pytest configuration and shared fixtures.

Provides synthetic metabolite matrices with known structure: a block of
features shifted upwards in the second group, optional missing values and
optional degenerate (constant) features.
"""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from pomakit.core.biomatrix import BioMatrix


def generate_metabolite_matrix(
    n_features: int = 30,
    n_per_group: int = 10,
    n_differential: int = 5,
    effect: float = 3.0,
    missing_fraction: float = 0.0,
    n_constant: int = 0,
    groups: tuple = ("Control", "Treated"),
    seed: int = 42,
) -> BioMatrix:
    """
    Generate a positive metabolite intensity matrix.

    Args:
        n_features: Number of metabolites (including constant ones)
        n_per_group: Samples per group
        n_differential: Leading features raised in the last group
        effect: Shift (on the log2 scale) of differential features
        missing_fraction: Fraction of values set to NaN (never in constant
            features)
        n_constant: Trailing features with a single constant value
        groups: Group labels; samples are assigned in blocks
        seed: Random seed for reproducibility

    Design:
        - log2 intensities ~ N(10, 1), returned on the linear scale
        - First n_differential features shifted by effect in groups[-1]
    """
    rng = np.random.default_rng(seed)
    n_samples = n_per_group * len(groups)

    log_values = rng.normal(10.0, 1.0, size=(n_features, n_samples))
    log_values[:n_differential, -n_per_group:] += effect
    data = np.power(2.0, log_values)

    if n_constant:
        data[n_features - n_constant:, :] = 100.0

    if missing_fraction > 0:
        variable = n_features - n_constant
        n_missing = int(variable * n_samples * missing_fraction)
        positions = rng.choice(variable * n_samples, size=n_missing, replace=False)
        data[positions // n_samples, positions % n_samples] = np.nan

    sample_ids = pd.Index([f"S{i:02d}" for i in range(n_samples)])
    labels = np.repeat(list(groups), n_per_group)
    metadata = pd.DataFrame(
        {
            "group": labels,
            "age": rng.integers(30, 70, size=n_samples),
        },
        index=sample_ids,
    )

    return BioMatrix(
        data=data,
        feature_ids=pd.Index([f"M{i:03d}" for i in range(n_features)]),
        sample_ids=sample_ids,
        sample_metadata=metadata,
    )


@pytest.fixture
def matrix():
    """30 metabolites × 20 samples, 5 raised in 'Treated', no missing values."""
    return generate_metabolite_matrix()


@pytest.fixture
def sparse_matrix():
    """30 metabolites × 20 samples with 10% missing values."""
    return generate_metabolite_matrix(missing_fraction=0.1, seed=7)


@pytest.fixture
def log_matrix(matrix):
    """The default matrix on the log2 scale."""
    return matrix.with_data(np.log2(matrix.data))


@pytest.fixture
def three_group_matrix():
    """Matrix with three groups, invalid for two-group analyses."""
    return generate_metabolite_matrix(n_per_group=6, groups=("A", "B", "C"))


@pytest.fixture(autouse=True)
def close_figures():
    """Close every matplotlib figure a test created."""
    yield
    plt.close("all")
