"""
tabular_privacy - Anonymization transforms and privacy model verification.

This package generalizes, suppresses, swaps and adds noise to attributes of
tabular data, and verifies k-anonymity, l-diversity and t-closeness over the
resulting equivalence classes.
"""

from tabular_privacy._version import __version__
from tabular_privacy.errors import (
    AnonymizationError,
    ConfigurationError,
    DomainError,
    InternalConsistencyError,
    SchemaError,
)
from tabular_privacy.generalization import (
    ConstantRule,
    GeneralizationRule,
    HierarchyRule,
    MappingRule,
    RangeRule,
    generalize,
)
from tabular_privacy.grouping import EquivalenceClass, group
from tabular_privacy.noise import GaussianMechanism, LaplaceMechanism, add_noise
from tabular_privacy.pipeline import (
    EvaluateStage,
    GeneralizeStage,
    NoiseStage,
    Pipeline,
    SuppressStage,
    SwapStage,
    run,
)
from tabular_privacy.privacy_models import (
    KAnonymity,
    LDiversity,
    PrivacyVerdict,
    TCloseness,
    ViolationPolicy,
    compute_distribution,
    evaluate,
)
from tabular_privacy.suppression import suppress, suppress_attributes
from tabular_privacy.swapping import swap
from tabular_privacy.table import AttributeRole, AttributeRoles

__all__ = [
    "__version__",
    "AnonymizationError",
    "ConfigurationError",
    "DomainError",
    "InternalConsistencyError",
    "SchemaError",
    "AttributeRole",
    "AttributeRoles",
    "GeneralizationRule",
    "RangeRule",
    "MappingRule",
    "HierarchyRule",
    "ConstantRule",
    "generalize",
    "suppress",
    "suppress_attributes",
    "swap",
    "add_noise",
    "LaplaceMechanism",
    "GaussianMechanism",
    "EquivalenceClass",
    "group",
    "KAnonymity",
    "LDiversity",
    "TCloseness",
    "ViolationPolicy",
    "PrivacyVerdict",
    "compute_distribution",
    "evaluate",
    "Pipeline",
    "GeneralizeStage",
    "SuppressStage",
    "SwapStage",
    "NoiseStage",
    "EvaluateStage",
    "run",
]
