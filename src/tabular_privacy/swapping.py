"""
Data swapping: random permutation of an attribute across records.

Swapping keeps the multiset of an attribute's values but breaks the pairing
between records and values, so that published rows no longer link e.g. a
diagnosis to the person's other attributes. Permutations are drawn from a
seeded generator so that results are reproducible.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from tabular_privacy.table import require_attributes
from tabular_privacy.utils import Seed, make_rng


def swap(
    logger: logging.Logger,
    input_df: pd.DataFrame,
    attribute: str,
    seed: Optional[Seed],
) -> pd.DataFrame:
    """
    Randomly permute the values of ``attribute`` across records.

    Parameters
    ----------
    logger : logging.Logger
        Logger for recording the transform
    input_df : pd.DataFrame
        Table to swap; it is not modified.
    attribute : str
        Attribute whose values are permuted.
    seed : int or np.random.Generator
        Source of randomness. The same integer seed always yields the same
        permutation for the same table.

    Returns
    -------
    pd.DataFrame
        A new table, identical to ``input_df`` except that the values of
        ``attribute`` are reassigned in permuted order. Tables with at most
        one record are returned unchanged (as a copy).

    Raises
    ------
    SchemaError
        If ``attribute`` is absent from the table.
    ConfigurationError
        If ``seed`` is missing or invalid.
    """
    require_attributes(input_df, [attribute])
    rng = make_rng(seed, attribute=attribute)
    output_df = input_df.copy()
    if len(input_df) <= 1:
        logger.debug("Swap of %s skipped, %d records", attribute, len(input_df))
        return output_df
    permutation = rng.permutation(len(input_df))
    output_df[attribute] = input_df[attribute].iloc[permutation].set_axis(input_df.index)
    logger.debug(
        "Swapped %s, %d of %d records changed position",
        attribute,
        int((permutation != np.arange(len(permutation))).sum()),
        len(permutation),
    )
    return output_df
