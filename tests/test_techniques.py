"""
Tests for techniques
"""

import logging

import pytest

from tabular_privacy.errors import ConfigurationError
from tabular_privacy.generalization import MappingRule
from tabular_privacy.noise import GaussianMechanism
from tabular_privacy.pipeline import EvaluateStage, GeneralizeStage, SuppressStage
from tabular_privacy.privacy_models import ViolationPolicy
from tabular_privacy.table import AttributeRoles
from tabular_privacy.techniques import (
    differential_privacy_pipeline,
    k_anonymity_pipeline,
    l_diversity_pipeline,
    swapping_pipeline,
    t_closeness_pipeline,
)
from tests.shared import make_age_rule, make_patients_df

_LOGGER = logging.getLogger(__name__)

_ROLES = AttributeRoles(
    {
        "PatientID": "identifier",
        "PatientAge": "quasi_identifier",
        "Gender": "quasi_identifier",
        "Diagnosis": "sensitive",
    }
)


class TestPrivacyModelTechniques:
    """
    Tests for the k-anonymity, l-diversity and t-closeness pipelines.
    """

    def test_k_anonymity_pipeline(self):
        pipeline = k_anonymity_pipeline(
            _ROLES,
            2,
            {"PatientAge": make_age_rule()},
            qid_to_output_attribute={"PatientAge": "AgeGroup"},
        )
        assert pipeline.name == "k-anonymity"
        assert [stage.name for stage in pipeline.stages] == [
            "suppress:PatientID",
            "generalize:PatientAge",
            "evaluate:k-anonymity(k=2)",
        ]
        assert pipeline.stages[-1].quasi_identifiers == ("AgeGroup", "Gender")

        output_df, verdicts = pipeline.run(_LOGGER, make_patients_df())
        assert verdicts[0].offending_classes == (("50+", "F"), ("40-49", "F"), ("50+", "M"))
        assert len(output_df) == 7
        assert set(output_df["PatientID"]) == {"***"}

    def test_keep_identifiers(self):
        pipeline = k_anonymity_pipeline(
            _ROLES,
            2,
            {"PatientAge": make_age_rule()},
            policy=ViolationPolicy.REJECT,
            suppress_identifiers=False,
        )
        assert not any(isinstance(stage, SuppressStage) for stage in pipeline.stages)
        assert pipeline.stages[-1].quasi_identifiers == ("PatientAge", "Gender")
        output_df, verdicts = pipeline.run(_LOGGER, make_patients_df())
        assert not verdicts[0]
        assert len(output_df) == 0

    def test_l_diversity_pipeline(self):
        pipeline = l_diversity_pipeline(
            _ROLES,
            2,
            {"PatientAge": make_age_rule(), "Gender": MappingRule({"M": "*", "F": "*"})},
            mask="X",
        )
        assert isinstance(pipeline.stages[0], SuppressStage)
        assert pipeline.stages[0].mask == "X"
        assert sum(isinstance(stage, GeneralizeStage) for stage in pipeline.stages) == 2
        output_df, verdicts = pipeline.run(_LOGGER, make_patients_df())
        # both 50+ patients have the flu
        assert verdicts[0].offending_classes == (("50+", "*"),)
        assert len(output_df) == 8

    def test_t_closeness_pipeline(self):
        pipeline = t_closeness_pipeline(
            _ROLES,
            0.5,
            {"PatientAge": make_age_rule()},
            qid_to_output_attribute={"PatientAge": "AgeGroup"},
        )
        evaluate_stage = pipeline.stages[-1]
        assert isinstance(evaluate_stage, EvaluateStage)
        assert evaluate_stage.model.sensitive_attribute == "Diagnosis"
        _, verdicts = pipeline.run(_LOGGER, make_patients_df())
        assert verdicts[0].offending_classes == (("40-49", "F"),)

    def test_misconfigured(self):
        with pytest.raises(ConfigurationError):
            k_anonymity_pipeline(AttributeRoles({"Diagnosis": "sensitive"}), 2, {})
        with pytest.raises(ConfigurationError):
            k_anonymity_pipeline(_ROLES, 2, {"Diagnosis": make_age_rule()})
        with pytest.raises(ConfigurationError):
            k_anonymity_pipeline(_ROLES, 2, {}, qid_to_output_attribute={"Gender": "Sex"})
        with pytest.raises(ConfigurationError) as excinfo:
            k_anonymity_pipeline(_ROLES, 0, {"PatientAge": make_age_rule()})
        assert excinfo.value.stage == "evaluate:k-anonymity(k=0)"
        with pytest.raises(ConfigurationError):
            l_diversity_pipeline(AttributeRoles({"Gender": "quasi_identifier"}), 2, {})


class TestPerturbationTechniques:
    """
    Tests for the swapping and differential privacy pipelines.
    """

    def test_swapping_pipeline(self):
        pipeline = swapping_pipeline(_ROLES, seed=4)
        assert [stage.name for stage in pipeline.stages] == [
            "suppress:PatientID",
            "swap:Diagnosis",
        ]
        input_df = make_patients_df()
        output_df, verdicts = pipeline.run(_LOGGER, input_df)
        assert verdicts == []
        assert sorted(output_df["Diagnosis"]) == sorted(input_df["Diagnosis"])

    def test_swapping_pipeline_attribute(self):
        pipeline = swapping_pipeline(_ROLES, seed=4, attribute="Gender", suppress_identifiers=False)
        assert [stage.name for stage in pipeline.stages] == ["swap:Gender"]
        with pytest.raises(ConfigurationError):
            swapping_pipeline(_ROLES, seed=None)
        with pytest.raises(ConfigurationError):
            swapping_pipeline(AttributeRoles({"Gender": "quasi_identifier"}), seed=4)

    def test_differential_privacy_pipeline(self):
        pipeline = differential_privacy_pipeline(
            _ROLES, "PatientAge", epsilon=1.0, sensitivity=1.0, seed=0
        )
        assert pipeline.name == "differential-privacy"
        input_df = make_patients_df()
        output_df, _ = pipeline.run(_LOGGER, input_df)
        assert (output_df["PatientAge"] != input_df["PatientAge"]).all()
        pipeline = differential_privacy_pipeline(
            _ROLES,
            "PatientAge",
            epsilon=0.5,
            sensitivity=1.0,
            seed=0,
            mechanism=GaussianMechanism(1e-5),
            suppress_identifiers=False,
        )
        assert [stage.name for stage in pipeline.stages] == ["noise:PatientAge"]
        with pytest.raises(ConfigurationError):
            differential_privacy_pipeline(_ROLES, "PatientAge", epsilon=0, sensitivity=1, seed=0)
