"""
pgmkit/data.py

Read access to tabular observation data.

A data table has one named column per variable (column name = node name)
and one row per observation. Three shapes are accepted:
- a mapping from column name to a sequence of values
- a sequence of row mappings
- any object answering table[name] with a column (e.g. a data frame)
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from pgmkit.errors import VariableNotFound


def column(data: Any, name: str) -> List[Any]:
    """
    Get one column of a data table as a list.

    Args:
        data: Data table
        name: Column name

    Returns:
        Column values in row order
    """
    if isinstance(data, Mapping):
        if name not in data:
            raise VariableNotFound(f"Data table has no column {name!r}")
        return list(data[name])

    if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
        out = []
        for i, row in enumerate(data):
            if name not in row:
                raise VariableNotFound(f"Row {i} of the data table has no column {name!r}")
            out.append(row[name])
        return out

    try:
        col = data[name]
    except (KeyError, IndexError, TypeError):
        raise VariableNotFound(f"Data table has no column {name!r}") from None
    return list(col)


def materialize(data: Any) -> Any:
    """
    Read every column of a mapping into a list.

    Columns given as one-shot iterators (generators) can then be read
    more than once. Other data tables are returned unchanged.
    """
    if isinstance(data, Mapping):
        return {name: list(col) for name, col in data.items()}
    return data


def num_rows(data: Any) -> int:
    """Number of observations in a data table with sized columns."""
    if isinstance(data, Mapping):
        lengths = {len(col) for col in data.values()}
        if len(lengths) > 1:
            raise ValueError(f"Data columns have different lengths: {sorted(lengths)}")
        return lengths.pop() if lengths else 0
    return len(data)


def observations_table(dataset: Sequence[int], names: Sequence[str]) -> Dict[str, List[bool]]:
    """
    Build a boolean data table from integer-coded observations.

    Each integer is read in binary. The least significant bit becomes the
    column of names[0], the next bit names[1], and so on.

    Args:
        dataset: Non-negative integers, one per observation
        names: Variable name for each bit

    Returns:
        Mapping from name to a column of True/False values
    """
    table: Dict[str, List[bool]] = {n: [] for n in names}
    for x in dataset:
        x = int(x)
        if x < 0:
            raise ValueError(f"Observation {x} is negative")
        if x >> len(names):
            raise ValueError(f"Observation {x} needs more than {len(names)} bits")
        for i, n in enumerate(names):
            table[n].append(bool((x >> i) & 1))
    return table
