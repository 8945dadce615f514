"""
Pandas utility functions.

We call this pandas_utils instead of pandas to avoid mistakes in import statements.
"""

from hashlib import sha256

import numpy as np
import pandas as pd

from tabular_privacy.constants import MAX_RANDOM_STATE


def get_temp_col(
    input_df: pd.DataFrame,
    col_prefix: str = "position_",
    random_seed: int = 42,
    max_attempts: int = 10_000,
) -> str:
    """
    Get a column name not already used by the given table.

    Parameters
    ----------
    input_df : pd.DataFrame
        Table to check for column name conflicts.
    col_prefix : str, optional
        Prefix for column name, defaults to ``position_``.
    random_seed : int, optional
        Seed so that the same table always yields the same name, defaults to 42.
    max_attempts : int, optional
        Maximum number of candidate names to try, defaults to 10,000.

    Returns
    -------
    str
        Column name not present in input_df.

    Raises
    ------
    RuntimeError
        If no free column name was found after max_attempts.
    """
    cols = set(str(col_name) for col_name in input_df.columns)
    rng = np.random.default_rng(seed=random_seed)
    for _ in range(max_attempts):
        temp_col = f"{col_prefix}_{rng.integers(0, MAX_RANDOM_STATE)}"
        if temp_col not in cols:
            return temp_col
    raise RuntimeError(
        f"Unable to generate unique column name after {max_attempts} attempts. "
        f"Table may have too many existing columns with prefix '{col_prefix}_'."
    )


def with_position_col(input_df: pd.DataFrame) -> tuple[pd.DataFrame, str]:
    """
    Return a copy of the table with an extra column holding row positions.

    Row positions (0-indexed) identify records independently of the table's
    index, which may contain duplicates.

    Parameters
    ----------
    input_df : pd.DataFrame
        Table to copy; it is not modified.

    Returns
    -------
    Tuple[pd.DataFrame, str]
        The copy and the name of the inserted column.
    """
    position_col = get_temp_col(input_df)
    output_df = input_df.copy()
    output_df.insert(0, position_col, np.arange(len(output_df), dtype=np.int64))
    return output_df, position_col


def hash_df(df: pd.DataFrame) -> int:
    """
    Generate a deterministic hash value for a table.

    SHA256 is deterministic across Python runs, unlike hash() which uses
    random seeding. Used to check that a transform did not modify its input.

    Parameters
    ----------
    df : pd.DataFrame
        Table to hash

    Returns
    -------
    int
        Deterministic hash value for the table
    """
    hash_value = sha256(pd.util.hash_pandas_object(df, index=True).values)  # type: ignore[reportAttributeAccessIssue]  # hash_pandas_object is a real pandas.util function
    hash_value.update(",".join(str(col) for col in df.columns).encode("utf-8"))
    return int.from_bytes(hash_value.digest(), "big")
