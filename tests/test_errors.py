"""Tests for the error taxonomy and shared argument validators."""

import warnings
from enum import Enum

import pandas as pd
import pytest

from pomakit._validators import _group_labels, _resolve_method, _two_levels
from pomakit.errors import (
    FeatureNotFoundError,
    GroupMismatchError,
    InvalidArgumentError,
    MissingArgumentError,
    PomaError,
)


class Color(Enum):
    RED = "red"
    BLUE = "blue"


@pytest.mark.parametrize("error,builtin", [
    (MissingArgumentError, ValueError),
    (InvalidArgumentError, ValueError),
    (GroupMismatchError, ValueError),
    (FeatureNotFoundError, KeyError),
])
def test_hierarchy(error, builtin):
    assert issubclass(error, PomaError)
    assert issubclass(error, builtin)


def test_feature_not_found_message_unquoted():
    assert str(FeatureNotFoundError("missing: x")) == "missing: x"


class TestResolveMethod:
    def test_name(self):
        assert _resolve_method("blue", Color, Color.RED) is Color.BLUE

    def test_member(self):
        assert _resolve_method(Color.BLUE, Color, Color.RED) is Color.BLUE

    def test_none_warns(self):
        with pytest.warns(UserWarning, match="method argument is empty! red will be used"):
            assert _resolve_method(None, Color, Color.RED) is Color.RED

    def test_unknown_lists_choices(self):
        with pytest.raises(InvalidArgumentError, match="red, blue"):
            _resolve_method("green", Color, Color.RED)

    def test_no_warning_for_explicit_choice(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            _resolve_method("red", Color, Color.RED)


class TestTwoLevels:
    def test_sorted_levels(self):
        assert _two_levels(pd.Series(["b", "a", "b", None])) == ("a", "b")

    def test_too_many(self):
        with pytest.raises(GroupMismatchError, match="more than two groups"):
            _two_levels(pd.Series(["a", "b", "c"]))

    def test_too_few(self):
        with pytest.raises(GroupMismatchError, match="Exactly two"):
            _two_levels(pd.Series(["a", "a"]))

    def test_numeric_codes_sorted_numerically(self):
        assert _two_levels(pd.Series([10, 9, 10, 9])) == ("9", "10")

    def test_float_codes_drop_trailing_zero(self):
        groups = pd.Series([10.0, 9.0, None])
        assert _two_levels(groups) == ("9", "10")
        assert _group_labels(groups.dropna()).tolist() == ["10", "9"]
