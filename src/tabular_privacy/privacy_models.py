"""
Privacy model evaluators: k-anonymity, l-diversity and t-closeness.

Each model decides, per equivalence class, whether the class satisfies the
model. A table satisfies a model iff every one of its classes does. What
happens to a table that does not is a policy choice (ViolationPolicy): drop
the violating classes, which is the usual practice and the default, or reject
the whole table.

References
----------
L. Sweeney, "k-anonymity: a model for protecting privacy," International
Journal of Uncertainty, Fuzziness and Knowledge-Based Systems, vol. 10,
no. 5, pp. 557-570, 2002.

A. Machanavajjhala, J. Gehrke, D. Kifer, and M. Venkitasubramaniam,
"L-diversity: privacy beyond k-anonymity," in 22nd International Conference
on Data Engineering (ICDE'06), 2006. doi: 10.1109/ICDE.2006.1.

N. Li, T. Li, and S. Venkatasubramanian, "t-Closeness: Privacy Beyond
k-Anonymity and l-Diversity," in 23rd International Conference on Data
Engineering (ICDE'07), 2007. doi: 10.1109/ICDE.2007.367856.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from numbers import Real
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from tabular_privacy.constants import EPSILON
from tabular_privacy.errors import ConfigurationError, DomainError, InternalConsistencyError
from tabular_privacy.grouping import EquivalenceClass, group
from tabular_privacy.table import require_attributes
from tabular_privacy.utils import max_abs_difference

Distribution = dict[Any, float]


class ViolationPolicy(Enum):
    """What to do with a table in which some equivalence classes violate the model."""

    # Output only the records of satisfying classes
    DROP = "drop"
    # Output no records at all
    REJECT = "reject"


def compute_distribution(input_df: pd.DataFrame, attribute: str) -> Optional[Distribution]:
    """
    Compute the distribution of an attribute's values.

    Parameters
    ----------
    input_df : pd.DataFrame
        Records to compute the distribution over.
    attribute : str
        Attribute, typically the sensitive attribute.

    Returns
    -------
    Optional[Dict[Any, float]]
        Maps each distinct value to its proportion of the records, in order of
        first appearance; proportions sum to 1. None for an empty table, whose
        distribution is undefined.

    Raises
    ------
    SchemaError
        If ``attribute`` is absent.
    DomainError
        If ``attribute`` has missing values.
    """
    require_attributes(input_df, [attribute])
    if len(input_df) == 0:
        return None
    _check_no_missing_values(input_df, attribute)
    proportions = input_df[attribute].value_counts(normalize=True, sort=False)
    return {value: float(proportion) for value, proportion in proportions.items()}


def _check_no_missing_values(input_df: pd.DataFrame, attribute: str) -> None:
    if input_df[attribute].isna().any():
        raise DomainError("Sensitive attribute has missing values", attribute=attribute)


class PrivacyModel(ABC):
    """
    An equivalence-class-based privacy model.

    Models over a sensitive attribute expose it as ``sensitive_attribute``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short description including the parameters, e.g. ``k-anonymity(k=2)``."""

    @abstractmethod
    def validate(self) -> None:
        """Raise ConfigurationError if the model's parameters are invalid."""

    @abstractmethod
    def class_satisfies(self, class_df: pd.DataFrame) -> bool:
        """Whether the records of one equivalence class satisfy the model."""


@dataclass(frozen=True)
class KAnonymity(PrivacyModel):
    """A class satisfies k-anonymity iff it has at least ``k`` records."""

    k: int

    @property
    def name(self) -> str:
        return f"k-anonymity(k={self.k})"

    def validate(self) -> None:
        _check_int_at_least("k", self.k, 1)

    def class_satisfies(self, class_df: pd.DataFrame) -> bool:
        return len(class_df) >= self.k


@dataclass(frozen=True)
class LDiversity(PrivacyModel):
    """
    A class satisfies (distinct) l-diversity iff it has at least ``l``
    distinct values of the sensitive attribute.
    """

    l: int  # noqa: E741
    sensitive_attribute: str

    @property
    def name(self) -> str:
        return f"l-diversity(l={self.l}, sensitive={self.sensitive_attribute})"

    def validate(self) -> None:
        _check_int_at_least("l", self.l, 1)

    def class_satisfies(self, class_df: pd.DataFrame) -> bool:
        return int(class_df[self.sensitive_attribute].nunique()) >= self.l


@dataclass(frozen=True)
class TCloseness(PrivacyModel):
    """
    A class satisfies t-closeness iff, for every sensitive value, the absolute
    difference between the class's proportion and the global proportion is at
    most ``t``.

    Values absent from the class (or from the global distribution) count with
    proportion 0. The comparison is closed (``<= t``), with a tolerance of
    ``EPSILON`` for floating point error.

    Attributes
    ----------
    t : float
        Maximum allowed difference, ``t >= 0``.
    sensitive_attribute : str
        The sensitive attribute.
    global_distribution : Optional[Mapping[Any, float]]
        Distribution of the sensitive attribute over the original,
        pre-generalization table. If None, evaluate() computes it from its
        input table and the pipeline computes it from the pipeline's input.
    """

    t: float
    sensitive_attribute: str
    global_distribution: Optional[Mapping[Any, float]] = field(default=None, compare=False)

    @property
    def name(self) -> str:
        return f"t-closeness(t={self.t}, sensitive={self.sensitive_attribute})"

    def validate(self) -> None:
        if isinstance(self.t, bool) or not isinstance(self.t, Real) or math.isnan(self.t):
            raise ConfigurationError("t must be a number", value=self.t)
        if self.t < 0:
            raise ConfigurationError("t must be >= 0", value=self.t)
        if self.global_distribution is not None:
            proportions = list(self.global_distribution.values())
            if len(proportions) == 0:
                raise ConfigurationError("Global distribution is empty")
            if any(p < 0 for p in proportions) or abs(sum(proportions) - 1.0) > EPSILON * len(
                proportions
            ):
                raise ConfigurationError(
                    "Global distribution proportions must be >= 0 and sum to 1",
                    attribute=self.sensitive_attribute,
                )

    def with_global_distribution(self, global_distribution: Distribution) -> "TCloseness":
        return replace(self, global_distribution=global_distribution)

    def distance(self, class_df: pd.DataFrame) -> float:
        """
        Largest absolute difference between the class's and the global proportions.

        Raises
        ------
        InternalConsistencyError
            If the global distribution is undefined or the class is empty.
        """
        if self.global_distribution is None:
            raise InternalConsistencyError(
                "Global distribution is undefined", attribute=self.sensitive_attribute
            )
        local_distribution = compute_distribution(class_df, self.sensitive_attribute)
        if local_distribution is None:
            raise InternalConsistencyError(
                "Empty equivalence class", attribute=self.sensitive_attribute
            )
        values = list(self.global_distribution.keys()) + [
            value for value in local_distribution if value not in self.global_distribution
        ]
        local = np.array([local_distribution.get(value, 0.0) for value in values], dtype=float)
        global_ = np.array(
            [self.global_distribution.get(value, 0.0) for value in values], dtype=float
        )
        return float(max_abs_difference(local, global_))

    def class_satisfies(self, class_df: pd.DataFrame) -> bool:
        return self.distance(class_df) <= self.t + EPSILON


def _check_int_at_least(param: str, value: Any, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{param} must be an int", value=value)
    if value < minimum:
        raise ConfigurationError(f"{param} must be >= {minimum}", value=value)


@dataclass(frozen=True)
class PrivacyVerdict:
    """
    Outcome of evaluating a privacy model over a table.

    A verdict is truthy iff the model is satisfied.

    Attributes
    ----------
    model : str
        Name of the evaluated model including its parameters.
    satisfied : bool
        True iff every equivalence class satisfies the model.
    reason : Optional[str]
        Why the model is violated; None when satisfied.
    offending_classes : tuple
        Quasi-identifier keys of the violating classes, in class order.
    n_classes : int
        Number of equivalence classes evaluated.
    n_records_removed : int
        Number of records removed from the output under the violation policy.
    policy : ViolationPolicy
        The violation policy applied.
    """

    model: str
    satisfied: bool
    reason: Optional[str] = None
    offending_classes: tuple[tuple[Any, ...], ...] = ()
    n_classes: int = 0
    n_records_removed: int = 0
    policy: ViolationPolicy = ViolationPolicy.DROP

    @classmethod
    def satisfied_for(
        cls, model: PrivacyModel, n_classes: int, policy: ViolationPolicy
    ) -> "PrivacyVerdict":
        return cls(model=model.name, satisfied=True, n_classes=n_classes, policy=policy)

    @classmethod
    def violated(
        cls,
        model: PrivacyModel,
        offending_classes: Sequence[EquivalenceClass],
        n_classes: int,
        n_records_removed: int,
        policy: ViolationPolicy,
    ) -> "PrivacyVerdict":
        return cls(
            model=model.name,
            satisfied=False,
            reason=(
                f"{len(offending_classes)} of {n_classes} equivalence classes "
                f"({sum(c.size for c in offending_classes)} records) violate {model.name}"
            ),
            offending_classes=tuple(c.key for c in offending_classes),
            n_classes=n_classes,
            n_records_removed=n_records_removed,
            policy=policy,
        )

    def __bool__(self) -> bool:
        return self.satisfied


def evaluate_classes(
    logger: logging.Logger,
    classes: Sequence[EquivalenceClass],
    input_df: pd.DataFrame,
    model: PrivacyModel,
) -> list[bool]:
    """
    Evaluate a privacy model on each equivalence class.

    Parameters
    ----------
    logger : logging.Logger
        Logger for recording the evaluation
    classes : Sequence[EquivalenceClass]
        Classes computed from ``input_df``.
    input_df : pd.DataFrame
        The table the classes were computed from.
    model : PrivacyModel
        The model to evaluate; it must already be validated.

    Returns
    -------
    List[bool]
        Whether each class satisfies the model, in class order.

    Raises
    ------
    InternalConsistencyError
        If a class is empty.
    """
    satisfied = []
    for eq_class in classes:
        if eq_class.size == 0:
            raise InternalConsistencyError("Empty equivalence class", value=eq_class.key)
        satisfied.append(bool(model.class_satisfies(eq_class.records(input_df))))
    logger.debug(
        "%s: %d of %d equivalence classes satisfied", model.name, sum(satisfied), len(classes)
    )
    return satisfied


def evaluate(
    logger: logging.Logger,
    input_df: pd.DataFrame,
    quasi_identifiers: Sequence[str],
    model: PrivacyModel,
    policy: Union[ViolationPolicy, str] = ViolationPolicy.DROP,
) -> tuple[pd.DataFrame, PrivacyVerdict]:
    """
    Evaluate a privacy model over a table and apply the violation policy.

    Parameters
    ----------
    logger : logging.Logger
        Logger for recording the evaluation
    input_df : pd.DataFrame
        Table to evaluate, typically with generalized quasi-identifiers; it is
        not modified.
    quasi_identifiers : Sequence[str]
        Attributes defining the equivalence classes.
    model : PrivacyModel
        The privacy model. A TCloseness model without a global distribution
        uses the distribution of ``input_df``.
    policy : ViolationPolicy or str, default=ViolationPolicy.DROP
        DROP outputs the records of satisfying classes, in their original
        order. REJECT outputs an empty table with the input's schema if any
        class violates the model.

    Returns
    -------
    Tuple[pd.DataFrame, PrivacyVerdict]
        The output table and the verdict. The verdict is satisfied iff every
        class of ``input_df`` satisfies the model, regardless of policy.

    Raises
    ------
    ConfigurationError
        If the model's parameters or the policy are invalid.
    SchemaError
        If a quasi-identifier or the sensitive attribute is absent.
    DomainError
        If the sensitive attribute has missing values.
    """
    try:
        policy = ViolationPolicy(policy)
    except ValueError as err:
        raise ConfigurationError("Unknown violation policy", value=policy) from err
    model.validate()
    qids = list(quasi_identifiers)
    sens_attr: Optional[str] = getattr(model, "sensitive_attribute", None)
    require_attributes(input_df, qids + ([sens_attr] if sens_attr is not None else []))
    if sens_attr is not None:
        _check_no_missing_values(input_df, sens_attr)
    if isinstance(model, TCloseness) and model.global_distribution is None:
        global_distribution = compute_distribution(input_df, model.sensitive_attribute)
        if global_distribution is not None:
            logger.debug("%s: using the input table's global distribution", model.name)
            model = model.with_global_distribution(global_distribution)

    classes = group(logger, input_df, qids)
    satisfied = evaluate_classes(logger, classes, input_df, model)
    offending = [eq_class for eq_class, ok in zip(classes, satisfied) if not ok]
    if not offending:
        return input_df.copy(), PrivacyVerdict.satisfied_for(model, len(classes), policy)

    if policy == ViolationPolicy.DROP:
        keep_positions = sorted(
            position
            for eq_class, ok in zip(classes, satisfied)
            if ok
            for position in eq_class.positions
        )
        output_df = input_df.iloc[keep_positions].copy()
    else:
        output_df = input_df.iloc[0:0].copy()
    verdict = PrivacyVerdict.violated(
        model, offending, len(classes), len(input_df) - len(output_df), policy
    )
    logger.info(
        "%s; policy %s removed %d records",
        verdict.reason,
        policy.value,
        verdict.n_records_removed,
    )
    return output_df, verdict
