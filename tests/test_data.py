"""
Tests for data table access.
"""

import pytest

from pgmkit.data import column, materialize, num_rows, observations_table
from pgmkit.errors import VariableNotFound


class TestColumns:
    def test_column_mapping(self):
        assert column({"a": (1, 2)}, "a") == [1, 2]

    def test_column_rows(self):
        rows = [{"a": 1, "b": 2}, {"a": 3, "b": 4}]
        assert column(rows, "b") == [2, 4]
        assert num_rows(rows) == 2

    def test_missing_column(self):
        with pytest.raises(VariableNotFound):
            column({"a": [1]}, "b")
        with pytest.raises(VariableNotFound):
            column([{"a": 1}, {"b": 2}], "a")

    def test_materialize_generator_columns(self):
        data = materialize({"a": (x for x in [1, 2, 3]), "b": iter("xyz")})
        assert num_rows(data) == 3
        assert column(data, "a") == [1, 2, 3]
        assert column(data, "b") == ["x", "y", "z"]

    def test_materialize_rows_unchanged(self):
        rows = [{"a": 1}]
        assert materialize(rows) is rows

    def test_ragged_columns(self):
        with pytest.raises(ValueError):
            num_rows({"a": [1, 2], "b": [1]})


class TestObservationsTable:
    def test_bits(self):
        table = observations_table([0, 1, 2, 3], ["a", "b"])
        assert table == {"a": [False, True, False, True], "b": [False, False, True, True]}

    def test_too_many_bits(self):
        with pytest.raises(ValueError):
            observations_table([4], ["a", "b"])

    def test_negative(self):
        with pytest.raises(ValueError):
            observations_table([-1], ["a"])
