"""
Suppression of attribute values.

Suppression replaces every value of an attribute with a fixed mask token. It
is the degenerate case of generalization with a constant rule, and is
implemented that way.
"""

import logging
from collections.abc import Iterable
from typing import Any

import pandas as pd

from tabular_privacy.constants import DEFAULT_MASK
from tabular_privacy.generalization import ConstantRule, generalize
from tabular_privacy.table import require_attributes


def suppress(
    logger: logging.Logger,
    input_df: pd.DataFrame,
    attribute: str,
    mask: Any = DEFAULT_MASK,
) -> pd.DataFrame:
    """
    Replace every value of ``attribute`` with ``mask``.

    Parameters
    ----------
    logger : logging.Logger
        Logger for recording the transform
    input_df : pd.DataFrame
        Table to suppress; it is not modified.
    attribute : str
        Attribute to mask.
    mask : Any, default="***"
        Token written to every record.

    Returns
    -------
    pd.DataFrame
        A new table in which ``attribute`` holds only ``mask``; all other
        attributes are untouched.

    Raises
    ------
    SchemaError
        If ``attribute`` is absent from the table.
    """
    output_df = generalize(logger, input_df, attribute, ConstantRule(mask))
    logger.debug("Suppressed %s for %d records", attribute, len(output_df))
    return output_df


def suppress_attributes(
    logger: logging.Logger,
    input_df: pd.DataFrame,
    attributes: Iterable[str],
    mask: Any = DEFAULT_MASK,
) -> pd.DataFrame:
    """
    Suppress several attributes, e.g. all direct identifiers of a table.

    All attributes are checked before any is masked.

    See Also
    --------
    suppress : Suppress a single attribute
    """
    attributes = list(attributes)
    require_attributes(input_df, attributes)
    output_df = input_df
    for attribute in attributes:
        output_df = suppress(logger, output_df, attribute, mask=mask)
    return output_df.copy() if output_df is input_df else output_df
