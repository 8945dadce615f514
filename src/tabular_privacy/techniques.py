"""
Named anonymization techniques built from attribute roles.

Each function returns a Pipeline that masks direct identifiers (optionally),
applies the technique's transforms and, for the privacy models, evaluates the
model on the quasi-identifiers.
"""

from collections.abc import Mapping
from typing import Any, Optional

from tabular_privacy.constants import DEFAULT_MASK
from tabular_privacy.errors import ConfigurationError
from tabular_privacy.generalization import GeneralizationRule
from tabular_privacy.noise import NoiseMechanism
from tabular_privacy.pipeline import (
    EvaluateStage,
    GeneralizeStage,
    NoiseStage,
    Pipeline,
    Stage,
    SuppressStage,
    SwapStage,
)
from tabular_privacy.privacy_models import (
    KAnonymity,
    LDiversity,
    PrivacyModel,
    TCloseness,
    ViolationPolicy,
)
from tabular_privacy.table import AttributeRoles
from tabular_privacy.utils import Seed


def _identifier_stages(roles: AttributeRoles, suppress_identifiers: bool, mask: Any) -> list[Stage]:
    if not suppress_identifiers:
        return []
    return [SuppressStage(attribute, mask=mask) for attribute in roles.identifiers]


def _generalization_stages(
    roles: AttributeRoles,
    qid_to_rule: Mapping[str, GeneralizationRule],
    qid_to_output_attribute: Optional[Mapping[str, str]],
) -> tuple[list[Stage], list[str]]:
    """Return the generalization stages and the quasi-identifiers to group on after them."""
    qid_to_output_attribute = dict(qid_to_output_attribute or {})
    qids = roles.quasi_identifiers
    if len(qids) == 0:
        raise ConfigurationError("No quasi-identifiers are configured")
    for attribute in list(qid_to_rule) + list(qid_to_output_attribute):
        if attribute not in qids:
            raise ConfigurationError(
                "Generalization configured for an attribute that is not a quasi-identifier",
                attribute=attribute,
            )
    for attribute in qid_to_output_attribute:
        if attribute not in qid_to_rule:
            raise ConfigurationError(
                "Output attribute configured without a generalization rule", attribute=attribute
            )
    stages: list[Stage] = [
        GeneralizeStage(attribute, rule, output_attribute=qid_to_output_attribute.get(attribute))
        for attribute, rule in qid_to_rule.items()
    ]
    grouping_qids = [qid_to_output_attribute.get(qid, qid) for qid in qids]
    return stages, grouping_qids


def _privacy_model_pipeline(
    name: str,
    model: PrivacyModel,
    roles: AttributeRoles,
    qid_to_rule: Mapping[str, GeneralizationRule],
    qid_to_output_attribute: Optional[Mapping[str, str]],
    policy: ViolationPolicy,
    suppress_identifiers: bool,
    mask: Any,
) -> Pipeline:
    stages = _identifier_stages(roles, suppress_identifiers, mask)
    generalization_stages, grouping_qids = _generalization_stages(
        roles, qid_to_rule, qid_to_output_attribute
    )
    stages.extend(generalization_stages)
    stages.append(EvaluateStage(model, tuple(grouping_qids), policy=policy))
    pipeline = Pipeline(name, tuple(stages))
    pipeline.validate()
    return pipeline


def _require_sensitive(roles: AttributeRoles) -> str:
    if roles.sensitive is None:
        raise ConfigurationError("No sensitive attribute is configured")
    return roles.sensitive


def k_anonymity_pipeline(
    roles: AttributeRoles,
    k: int,
    qid_to_rule: Mapping[str, GeneralizationRule],
    qid_to_output_attribute: Optional[Mapping[str, str]] = None,
    policy: ViolationPolicy = ViolationPolicy.DROP,
    suppress_identifiers: bool = True,
    mask: Any = DEFAULT_MASK,
) -> Pipeline:
    """
    Generalize quasi-identifiers, then enforce k-anonymity.

    Parameters
    ----------
    roles : AttributeRoles
        Attribute role tagging; identifiers are masked and quasi-identifiers
        define the equivalence classes.
    k : int
        Minimum equivalence class size.
    qid_to_rule : Mapping[str, GeneralizationRule]
        Generalization rule per quasi-identifier. Quasi-identifiers without a
        rule are grouped on as they are.
    qid_to_output_attribute : Optional[Mapping[str, str]], default=None
        Quasi-identifiers whose generalized values go to a new attribute that
        replaces them, e.g. ``{"PatientAge": "AgeGroup"}``.
    policy : ViolationPolicy, default=ViolationPolicy.DROP
        What to do with violating equivalence classes.
    suppress_identifiers : bool, default=True
        Whether to mask the identifier attributes.
    mask : Any, default="***"
        Mask token for identifiers.

    Returns
    -------
    Pipeline
        The validated pipeline.
    """
    return _privacy_model_pipeline(
        "k-anonymity",
        KAnonymity(k),
        roles,
        qid_to_rule,
        qid_to_output_attribute,
        policy,
        suppress_identifiers,
        mask,
    )


def l_diversity_pipeline(
    roles: AttributeRoles,
    l: int,  # noqa: E741
    qid_to_rule: Mapping[str, GeneralizationRule],
    qid_to_output_attribute: Optional[Mapping[str, str]] = None,
    policy: ViolationPolicy = ViolationPolicy.DROP,
    suppress_identifiers: bool = True,
    mask: Any = DEFAULT_MASK,
) -> Pipeline:
    """
    Generalize quasi-identifiers, then enforce l-diversity on the sensitive attribute.

    See k_anonymity_pipeline for the parameters.
    """
    return _privacy_model_pipeline(
        "l-diversity",
        LDiversity(l, _require_sensitive(roles)),
        roles,
        qid_to_rule,
        qid_to_output_attribute,
        policy,
        suppress_identifiers,
        mask,
    )


def t_closeness_pipeline(
    roles: AttributeRoles,
    t: float,
    qid_to_rule: Mapping[str, GeneralizationRule],
    qid_to_output_attribute: Optional[Mapping[str, str]] = None,
    policy: ViolationPolicy = ViolationPolicy.DROP,
    suppress_identifiers: bool = True,
    mask: Any = DEFAULT_MASK,
) -> Pipeline:
    """
    Generalize quasi-identifiers, then enforce t-closeness on the sensitive attribute.

    The global distribution is taken from the table the pipeline runs on,
    before any transform. See k_anonymity_pipeline for the other parameters.
    """
    return _privacy_model_pipeline(
        "t-closeness",
        TCloseness(t, _require_sensitive(roles)),
        roles,
        qid_to_rule,
        qid_to_output_attribute,
        policy,
        suppress_identifiers,
        mask,
    )


def swapping_pipeline(
    roles: AttributeRoles,
    seed: Seed,
    attribute: Optional[str] = None,
    suppress_identifiers: bool = True,
    mask: Any = DEFAULT_MASK,
) -> Pipeline:
    """
    Mask identifiers and swap one attribute, by default the sensitive one.
    """
    attribute = attribute if attribute is not None else _require_sensitive(roles)
    stages = _identifier_stages(roles, suppress_identifiers, mask)
    stages.append(SwapStage(attribute, seed))
    pipeline = Pipeline("swapping", tuple(stages))
    pipeline.validate()
    return pipeline


def differential_privacy_pipeline(
    roles: AttributeRoles,
    attribute: str,
    epsilon: float,
    sensitivity: float,
    seed: Seed,
    mechanism: Optional[NoiseMechanism] = None,
    suppress_identifiers: bool = True,
    mask: Any = DEFAULT_MASK,
) -> Pipeline:
    """
    Mask identifiers and add calibrated noise to one numeric attribute.
    """
    stages = _identifier_stages(roles, suppress_identifiers, mask)
    stages.append(NoiseStage(attribute, epsilon, sensitivity, seed, mechanism=mechanism))
    pipeline = Pipeline("differential-privacy", tuple(stages))
    pipeline.validate()
    return pipeline
