"""
Entropy l-diversity of a table.

Distinct l-diversity counts sensitive values; entropy l-diversity also
accounts for how evenly they are spread within each equivalence class.
"""

from typing import cast

import numpy as np
import pandas as pd

from tabular_privacy.constants import NOT_DEFINED_NA
from tabular_privacy.table import require_attributes


def compute_entropy_l_diversity(
    input_df: pd.DataFrame,
    qids: list[str],
    sens_attr: str,
) -> tuple[float, float, float]:
    """
    Compute entropy l-diversity across all equivalence classes.

    Based on Definition 4.1 from Machanavajjhala et al. The value reported for
    a class is ``exp(-sum(p_s * log(p_s)))``, where ``p_s`` is the proportion
    of the class's records having sensitive value ``s``. A class with ``n``
    equally frequent sensitive values scores ``n``, so scores are directly
    comparable with distinct l-diversity.

    Parameters
    ----------
    input_df : pd.DataFrame
        Table to analyze.
    qids : List[str]
        Quasi-identifier columns defining the equivalence classes.
    sens_attr : str
        Sensitive attribute column.

    Returns
    -------
    Tuple[float, float, float]
        Average, minimum and maximum entropy l-diversity across classes; all
        NaN if there are no records.

    References
    ----------
    A. Machanavajjhala, J. Gehrke, D. Kifer, and M. Venkitasubramaniam,
    "L-diversity: privacy beyond k-anonymity," in 22nd International Conference
    on Data Engineering (ICDE'06), Atlanta, GA, USA: IEEE, 2006, pp. 24-24.
    doi: 10.1109/ICDE.2006.1.
    """
    require_attributes(input_df, list(qids) + [sens_attr])
    if len(input_df) == 0:
        return (NOT_DEFINED_NA, NOT_DEFINED_NA, NOT_DEFINED_NA)

    if len(qids) > 0:
        class_dfs = [
            class_df
            for _, class_df in input_df.groupby(list(qids), dropna=False, observed=True, sort=False)
        ]
    else:
        class_dfs = [input_df]
    l_values = []
    for class_df in class_dfs:
        proportions = cast(
            pd.Series, class_df[sens_attr].value_counts(normalize=True, dropna=False)
        ).to_numpy(dtype=float)
        entropy = -float(np.sum(proportions * np.log(proportions)))
        l_values.append(float(np.exp(entropy)))

    return float(np.mean(l_values)), float(np.min(l_values)), float(np.max(l_values))
