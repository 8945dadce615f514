"""
Generalization of attribute values to coarser categories.

A generalization rule is a total function from an attribute's raw value domain
to a finite set of category labels. Rules never fall through to a default
category: a value outside the rule's domain is a DomainError. The rules
provided here are:

- RangeRule: numeric values to labeled half-open bands, e.g. ages to age groups
- MappingRule: an explicit lookup table for categorical values
- HierarchyRule: categorical values to their ancestor in a generalization tree
- ConstantRule: every value to the same label, i.e. suppression
"""

import bisect
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from numbers import Real
from typing import Any, Optional

import numpy as np
import pandas as pd

from tabular_privacy.errors import ConfigurationError, DomainError, SchemaError
from tabular_privacy.gtrees import GTree
from tabular_privacy.table import require_attributes


class GeneralizationRule(ABC):
    """Total function from raw values to category labels."""

    @property
    @abstractmethod
    def labels(self) -> set[Any]:
        """The finite set of categories this rule can return."""

    @abstractmethod
    def validate(self) -> None:
        """Raise ConfigurationError if the rule is malformed."""

    @abstractmethod
    def __call__(self, value: Any) -> Any:
        """Return the category of ``value``; raise DomainError if there is none."""


class RangeRule(GeneralizationRule):
    """
    Generalize numeric values into labeled bands.

    Each band ``(lower, upper, label)`` covers the half-open interval
    ``[lower, upper)``. Bands must be sorted, non-overlapping and contiguous,
    so that every value in ``[bands[0].lower, bands[-1].upper)`` falls in
    exactly one band. Use ``-math.inf`` and ``math.inf`` for open ends.

    Parameters
    ----------
    bands : Sequence[Tuple[float, float, Any]]
        The bands, in increasing order.

    Raises
    ------
    ConfigurationError
        If there are no bands, a band is empty, or bands overlap or leave gaps.

    Examples
    --------
    >>> rule = RangeRule([(-math.inf, 40, "<40"), (40, 50, "40-49"), (50, math.inf, "50+")])
    >>> rule(39), rule(40), rule(50)
    ('<40', '40-49', '50+')
    """

    def __init__(self, bands: Sequence[tuple[float, float, Any]]) -> None:
        self.bands = [tuple(band) for band in bands]
        self.validate()
        self._lowers = [float(band[0]) for band in self.bands]

    @classmethod
    def from_cut_points(
        cls,
        cut_points: Sequence[float],
        labels: Sequence[Any],
        lower: float = -math.inf,
        upper: float = math.inf,
    ) -> "RangeRule":
        """
        Build contiguous bands from cut points.

        ``n`` cut points define ``n + 1`` bands, each labeled in order by
        ``labels``; e.g. cut points ``[40, 50]`` with labels
        ``["<40", "40-49", "50+"]``.
        """
        edges = [lower, *cut_points, upper]
        if len(labels) != len(edges) - 1:
            raise ConfigurationError(
                f"Expected {len(edges) - 1} labels for {len(cut_points)} cut points, "
                f"got {len(labels)}"
            )
        return cls([(edges[i], edges[i + 1], labels[i]) for i in range(len(labels))])

    @property
    def labels(self) -> set[Any]:
        return {band[2] for band in self.bands}

    def validate(self) -> None:
        if len(self.bands) == 0:
            raise ConfigurationError("RangeRule needs at least one band")
        for band in self.bands:
            if len(band) != 3:
                raise ConfigurationError("RangeRule bands are (lower, upper, label)", value=band)
            lower, upper, _ = band
            if not isinstance(lower, Real) or not isinstance(upper, Real):
                raise ConfigurationError("RangeRule band bounds must be numbers", value=band)
            if math.isnan(lower) or math.isnan(upper) or not lower < upper:
                raise ConfigurationError("RangeRule band must have lower < upper", value=band)
        for prev_band, band in zip(self.bands, self.bands[1:]):
            if prev_band[1] > band[0]:
                raise ConfigurationError(
                    f"RangeRule bands {prev_band} and {band} overlap or are out of order"
                )
            if prev_band[1] < band[0]:
                raise ConfigurationError(
                    f"RangeRule bands {prev_band} and {band} leave a gap", value=prev_band[1]
                )

    def __call__(self, value: Any) -> Any:
        if isinstance(value, (bool, np.bool_)) or not isinstance(value, (Real, np.number)):
            raise DomainError("Value is not numeric", value=value)
        if math.isnan(value):
            raise DomainError("Value is missing (NaN)", value=value)
        i = bisect.bisect_right(self._lowers, float(value)) - 1
        if i < 0 or not value < self.bands[i][1]:
            raise DomainError(
                f"Value outside [{self.bands[0][0]}, {self.bands[-1][1]})", value=value
            )
        return self.bands[i][2]

    def __repr__(self) -> str:
        return f"RangeRule({self.bands})"


class MappingRule(GeneralizationRule):
    """
    Generalize categorical values with an explicit lookup table.

    Parameters
    ----------
    mapping : Mapping[Any, Any]
        Raw value to category. Every value that occurs must be a key.
    """

    def __init__(self, mapping: Mapping[Any, Any]) -> None:
        self.mapping = dict(mapping)
        self.validate()

    @property
    def labels(self) -> set[Any]:
        return set(self.mapping.values())

    def validate(self) -> None:
        if len(self.mapping) == 0:
            raise ConfigurationError("MappingRule needs at least one entry")

    def __call__(self, value: Any) -> Any:
        try:
            return self.mapping[value]
        except (KeyError, TypeError) as err:
            raise DomainError("Value has no mapping", value=value) from err

    def __repr__(self) -> str:
        return f"MappingRule({self.mapping})"


class HierarchyRule(GeneralizationRule):
    """
    Generalize values to their ancestor at a fixed depth of a generalization tree.

    Parameters
    ----------
    gtree : GTree
        The hierarchy. Leaf values must be unique.
    level : int
        Depth to generalize to, where 0 is the root (full generalization).
    """

    def __init__(self, gtree: GTree, level: int) -> None:
        self.gtree = GTree(tree=gtree)
        self.level = level
        self.validate()
        self.gtree.update_highest_node_with_value_if()

    @property
    def labels(self) -> set[Any]:
        labels: set[Any] = set()
        for depth in range(self.level + 1):
            labels |= self.gtree.values_at_depth(depth)
        return labels

    def validate(self) -> None:
        self.gtree.validate()
        if isinstance(self.level, bool) or not isinstance(self.level, int):
            raise ConfigurationError("HierarchyRule level must be an int", value=self.level)
        if not 0 <= self.level <= self.gtree.depth():
            raise ConfigurationError(
                f"HierarchyRule level must be in [0, {self.gtree.depth()}]", value=self.level
            )

    def __call__(self, value: Any) -> Any:
        try:
            return self.gtree.generalize_value(value, self.level)
        except KeyError as err:
            raise DomainError("Value is not in the generalization tree", value=value) from err

    def __repr__(self) -> str:
        return f"HierarchyRule(level={self.level})"


class ConstantRule(GeneralizationRule):
    """Generalize every value, including missing ones, to ``label``."""

    def __init__(self, label: Any) -> None:
        self.label = label
        self.validate()

    @property
    def labels(self) -> set[Any]:
        return {self.label}

    def validate(self) -> None:
        pass

    def __call__(self, value: Any) -> Any:
        return self.label

    def __repr__(self) -> str:
        return f"ConstantRule({self.label!r})"


def generalize(
    logger: logging.Logger,
    input_df: pd.DataFrame,
    attribute: str,
    rule: GeneralizationRule,
    output_attribute: Optional[str] = None,
    keep_original: bool = False,
) -> pd.DataFrame:
    """
    Generalize an attribute of a table with a generalization rule.

    Parameters
    ----------
    logger : logging.Logger
        Logger for recording the transform
    input_df : pd.DataFrame
        Table to generalize; it is not modified.
    attribute : str
        Attribute whose values are generalized.
    rule : GeneralizationRule
        Rule applied to every value of ``attribute``.
    output_attribute : Optional[str], default=None
        If None, the generalized values replace ``attribute`` in place.
        Otherwise they are written to a new attribute inserted right after
        ``attribute``, e.g. ``AgeGroup`` after ``PatientAge``.
    keep_original : bool, default=False
        When writing to ``output_attribute``, whether ``attribute`` stays in
        the schema. By default it is removed.

    Returns
    -------
    pd.DataFrame
        A new table with the generalized attribute.

    Raises
    ------
    SchemaError
        If ``attribute`` is absent or ``output_attribute`` is already a column.
    ConfigurationError
        If the rule is malformed, or keep_original is set without an
        output_attribute.
    DomainError
        If a value of ``attribute`` has no category under ``rule``.
    """
    require_attributes(input_df, [attribute])
    if output_attribute == attribute:
        output_attribute = None
    if output_attribute is None and keep_original:
        raise ConfigurationError(
            "keep_original requires a distinct output_attribute", attribute=attribute
        )
    if output_attribute is not None and output_attribute in input_df.columns:
        raise SchemaError("Output attribute is already a column", attribute=output_attribute)
    rule.validate()

    # apply the rule once per distinct value, including NaN
    codes, uniques = pd.factorize(input_df[attribute], use_na_sentinel=False)
    categories = np.empty(len(uniques), dtype=object)
    for i, value in enumerate(uniques):
        try:
            categories[i] = rule(value)
        except DomainError as err:
            if err.attribute is None:
                err.attribute = attribute
            raise
    generalized = pd.Series(categories[codes], index=input_df.index, dtype=object)

    output_df = input_df.copy()
    if output_attribute is None:
        output_df[attribute] = generalized
    else:
        output_df.insert(input_df.columns.get_loc(attribute) + 1, output_attribute, generalized)
        if not keep_original:
            output_df.drop(columns=[attribute], inplace=True)
    logger.debug(
        "Generalized %s%s: %d distinct values into %d categories",
        attribute,
        f" into {output_attribute}" if output_attribute is not None else "",
        len(uniques),
        len(set(categories.tolist())) if len(categories) > 0 else 0,
    )
    return output_df
