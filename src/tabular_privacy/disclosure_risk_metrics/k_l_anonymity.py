"""
Actual k-anonymity and distinct l-diversity of a table.
"""

from typing import Optional, cast

import pandas as pd
from first import first  # type: ignore[import-untyped]

from tabular_privacy.pandas_utils import with_position_col
from tabular_privacy.table import require_attributes


def calculate_l_k(
    input_df: pd.DataFrame,
    qids: Optional[list[str]] = None,
    sens_attr: Optional[str] = None,
) -> tuple[Optional[int], int]:
    """
    Calculate the l and k values a table satisfies.

    k is the size of the smallest equivalence class (re-identification risk);
    l is the smallest number of distinct sensitive values in any equivalence
    class (attribute disclosure risk).

    Parameters
    ----------
    input_df : pd.DataFrame
        The table to analyze.
    qids : Optional[List[str]], default=None
        Quasi-identifier columns. If None, all columns except sens_attr are
        treated as quasi-identifiers.
    sens_attr : Optional[str], default=None
        Sensitive attribute column. If None, l is returned as None.

    Returns
    -------
    Tuple[Optional[int], int]
        ``(l, k)``.

    Raises
    ------
    ValueError
        If input_df is empty.
    SchemaError
        If a column is absent.

    Notes
    -----
    If there are no quasi-identifiers the whole table is a single class.

    Examples
    --------
    >>> df = pd.DataFrame({
    ...     'AgeGroup': ['<40', '<40', '50+', '50+'],
    ...     'Gender': ['F', 'F', 'M', 'M'],
    ...     'Diagnosis': ['Flu', 'Asthma', 'Flu', 'Flu']
    ... })
    >>> calculate_l_k(df, qids=['AgeGroup', 'Gender'], sens_attr='Diagnosis')
    (1, 2)
    """
    if len(input_df) == 0:
        raise ValueError("Input table has no rows")
    cols = [str(col_name) for col_name in input_df.columns]
    qids = (
        cols.copy() if qids is None else list(qids)
    )  # need a list object for pandas.DataFrame.groupby below; it might be a tuple
    require_attributes(input_df, qids + ([sens_attr] if sens_attr is not None else []))
    if sens_attr is not None and sens_attr in qids:
        qids.remove(sens_attr)

    keep_cols = qids + ([sens_attr] if sens_attr is not None else [])
    analysis_df, position_col = with_position_col(input_df[keep_cols])

    if len(qids) > 0:
        grouped = analysis_df.groupby(qids, dropna=False, observed=True)
        actual_k = int(first(grouped[[position_col]].count().min()))
        actual_l = (
            int(cast(int, grouped[sens_attr].nunique().min())) if sens_attr is not None else None
        )
    else:
        actual_k = len(analysis_df)
        actual_l = int(analysis_df[sens_attr].nunique()) if sens_attr is not None else None

    return actual_l, actual_k
