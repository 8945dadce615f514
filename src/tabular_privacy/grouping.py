"""
Partitioning of a table into equivalence classes.

An equivalence class is the set of records sharing identical values on all
quasi-identifiers. The grouper does not generalize; it groups on whatever
values are present, so callers generalize first.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from tabular_privacy.errors import InternalConsistencyError
from tabular_privacy.pandas_utils import with_position_col
from tabular_privacy.table import require_attributes


@dataclass(frozen=True)
class EquivalenceClass:
    """
    A non-empty set of records indistinguishable on the quasi-identifiers.

    Attributes
    ----------
    key : tuple
        The shared quasi-identifier values, in quasi-identifier order.
    positions : tuple of int
        Row positions (0-indexed, ascending) of the class's records in the
        table it was computed from.
    """

    key: tuple[Any, ...]
    positions: tuple[int, ...]

    @property
    def size(self) -> int:
        return len(self.positions)

    def records(self, input_df: pd.DataFrame) -> pd.DataFrame:
        """Return the class's records from the table it was computed from."""
        return input_df.iloc[list(self.positions)]


def group(
    logger: logging.Logger,
    input_df: pd.DataFrame,
    quasi_identifiers: Sequence[str],
) -> list[EquivalenceClass]:
    """
    Partition a table into equivalence classes on the quasi-identifiers.

    Parameters
    ----------
    logger : logging.Logger
        Logger for recording the grouping
    input_df : pd.DataFrame
        Table to partition.
    quasi_identifiers : Sequence[str]
        Attributes to group on. Missing values (NaN) form their own group.
        If empty, the whole table is a single class.

    Returns
    -------
    List[EquivalenceClass]
        The classes, ordered by the first appearance of their key in the
        table. An empty table yields an empty list.

    Raises
    ------
    SchemaError
        If a quasi-identifier is absent from the table.
    """
    qids = list(quasi_identifiers)  # need a list object for pandas.DataFrame.groupby below
    require_attributes(input_df, qids)
    if len(input_df) == 0:
        return []
    if len(qids) == 0:
        classes = [EquivalenceClass((), tuple(range(len(input_df))))]
    else:
        qid_df, position_col = with_position_col(input_df[qids])
        classes = [
            EquivalenceClass(key, tuple(block.tolist()))
            for key, block in qid_df.groupby(qids, sort=False, dropna=False, observed=True)[
                position_col
            ]
        ]
    check_partition(len(input_df), classes)
    logger.debug(
        "Grouped %d records on %s into %d equivalence classes", len(input_df), qids, len(classes)
    )
    return classes


def check_partition(n_records: int, classes: Sequence[EquivalenceClass]) -> None:
    """
    Check that ``classes`` partition a table of ``n_records`` records.

    Raises
    ------
    InternalConsistencyError
        If a class is empty, classes overlap, or a record is in no class.
    """
    seen: set[int] = set()
    for eq_class in classes:
        if eq_class.size == 0:
            raise InternalConsistencyError("Empty equivalence class", value=eq_class.key)
        positions = set(eq_class.positions)
        if len(positions) != eq_class.size or not seen.isdisjoint(positions):
            raise InternalConsistencyError(
                "Equivalence classes are not disjoint", value=eq_class.key
            )
        seen |= positions
    if seen != set(range(n_records)):
        raise InternalConsistencyError(
            f"Equivalence classes cover {len(seen)} of {n_records} records"
        )
