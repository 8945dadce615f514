"""
Actual t-closeness of a table.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

import pandas as pd

from tabular_privacy.constants import NOT_DEFINED_NA
from tabular_privacy.grouping import group
from tabular_privacy.privacy_models import TCloseness, compute_distribution

_LOGGER = logging.getLogger(__name__)


def calculate_t(
    input_df: pd.DataFrame,
    qids: list[str],
    sens_attr: str,
    global_distribution: Optional[Mapping[Any, float]] = None,
) -> float:
    """
    Calculate the smallest t for which the table satisfies t-closeness.

    Distances are measured as in TCloseness: the largest absolute difference
    between a class's proportion of a sensitive value and the global one.

    Parameters
    ----------
    input_df : pd.DataFrame
        Table to analyze.
    qids : List[str]
        Quasi-identifier columns defining the equivalence classes.
    sens_attr : str
        Sensitive attribute column.
    global_distribution : Optional[Mapping[Any, float]], default=None
        Distribution to compare against, typically that of the original
        table. Defaults to the distribution of ``input_df``.

    Returns
    -------
    float
        The largest class distance, or NaN if there are no records.
    """
    if global_distribution is None:
        global_distribution = compute_distribution(input_df, sens_attr)
    classes = group(_LOGGER, input_df, qids)
    if len(classes) == 0 or global_distribution is None:
        return NOT_DEFINED_NA
    model = TCloseness(0.0, sens_attr, global_distribution=dict(global_distribution))
    model.validate()
    return max(model.distance(eq_class.records(input_df)) for eq_class in classes)
