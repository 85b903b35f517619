"""Shared argument validators for the public analysis functions.

Every public entry point checks its inputs here before doing any work, so a
bad argument fails immediately with a descriptive message and no partial
output.
"""

from __future__ import annotations

import warnings
from enum import Enum
from typing import Iterable, Optional, TypeVar

import pandas as pd

from pomakit.core.biomatrix import BioMatrix
from pomakit.errors import (
    FeatureNotFoundError,
    GroupMismatchError,
    InvalidArgumentError,
    MissingArgumentError,
)

E = TypeVar("E", bound=Enum)


def _require_matrix(data: object) -> BioMatrix:
    """Return data if it is a BioMatrix; raise otherwise."""
    if data is None:
        raise MissingArgumentError("data argument is empty!")
    if not isinstance(data, BioMatrix):
        raise TypeError(
            f"data is not a BioMatrix object (got {type(data).__name__}). "
            "See BioMatrix.from_target_features or pomakit.io.load_csv_matrix"
        )
    return data


def _resolve_method(
    method: Optional[str | E],
    choices: type[E],
    default: E,
    argument: str = "method",
) -> E:
    """
    Map a method name onto its enum member.

    None falls back to default with a UserWarning; an unknown name raises
    InvalidArgumentError listing the valid names.
    """
    if method is None:
        warnings.warn(
            f"{argument} argument is empty! {default.value} will be used",
            UserWarning,
            stacklevel=3,
        )
        return default
    if isinstance(method, choices):
        return method
    try:
        return choices(method)
    except ValueError:
        valid = ", ".join(m.value for m in choices)
        raise InvalidArgumentError(
            f"Incorrect value for {argument} argument: {method!r}. "
            f"Choose from: {valid}"
        ) from None


def _check_choice(value: str, choices: Iterable[str], argument: str) -> str:
    """Raise InvalidArgumentError unless value is one of choices."""
    choices = list(choices)
    if value not in choices:
        raise InvalidArgumentError(
            f"Incorrect value for {argument} argument: {value!r}. "
            f"Choose from: {', '.join(choices)}"
        )
    return value


def _check_features(matrix: BioMatrix, feature_name: Optional[Iterable[str]]) -> Optional[list[str]]:
    """Normalize feature_name to a list and check every name exists."""
    if feature_name is None:
        return None
    if isinstance(feature_name, str):
        feature_name = [feature_name]
    names = list(feature_name)
    missing = matrix.missing_features(names)
    if missing:
        raise FeatureNotFoundError(
            f"At least one feature name not found: {', '.join(map(str, missing))}"
        )
    return names


def _level_name(value: object) -> str:
    """String form of a group level; integral floats lose their '.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _two_levels(groups: pd.Series) -> tuple[str, str]:
    """
    Return the two sorted group levels, or raise GroupMismatchError.

    Levels are sorted the way a categorical factor orders them: numeric codes
    numerically (9 before 10), everything else as text.
    """
    values = pd.Series(groups).dropna().unique()
    try:
        ordered = sorted(values)
    except TypeError:
        ordered = sorted(values, key=str)
    levels = list(dict.fromkeys(_level_name(v) for v in ordered))
    if len(levels) > 2:
        raise GroupMismatchError(
            f"Your data has more than two groups! Found {len(levels)}: {', '.join(levels)}"
        )
    if len(levels) < 2:
        raise GroupMismatchError(
            f"Exactly two groups are required, found {len(levels)}"
        )
    return levels[0], levels[1]


def _group_labels(groups: pd.Series) -> pd.Series:
    """Group labels as the strings returned by _two_levels."""
    return pd.Series(groups).map(_level_name)


def _target_table(data: object) -> pd.DataFrame:
    """
    Return a copy of data as an ID | Group | features table.

    Accepts a BioMatrix or a DataFrame whose first two columns are the sample
    identifier and the group.
    """
    if data is None:
        raise MissingArgumentError("data argument is empty!")
    if isinstance(data, BioMatrix):
        table = data.to_target_frame()
    elif isinstance(data, pd.DataFrame):
        table = data.copy()
    else:
        raise TypeError(
            f"data must be a pandas DataFrame or BioMatrix, got {type(data).__name__}"
        )
    if table.shape[1] < 3:
        raise InvalidArgumentError(
            "data must have an ID column, a group column and at least one feature"
        )
    clashes = [name for name in ("ID", "Group") if name in table.columns[2:]]
    if clashes:
        raise InvalidArgumentError(
            f"Feature columns {', '.join(clashes)} clash with the ID/Group columns; rename them first"
        )
    table.columns = ["ID", "Group", *table.columns[2:]]
    return table
