"""
Tests for config
"""

import json
import logging
import math

import pytest

from tabular_privacy.config import (
    generate_pipeline_config_file,
    load_pipeline_config_file,
    mechanism_from_config_json,
    model_from_config_json,
    pipeline_from_config_json,
    rule_from_config_json,
    stage_from_config_json,
)
from tabular_privacy.errors import ConfigurationError
from tabular_privacy.generalization import ConstantRule, HierarchyRule, MappingRule, RangeRule
from tabular_privacy.gtrees import GTree, generate_config_file
from tabular_privacy.noise import GaussianMechanism, LaplaceMechanism
from tabular_privacy.pipeline import EvaluateStage, NoiseStage, SuppressStage, SwapStage
from tabular_privacy.privacy_models import KAnonymity, LDiversity, TCloseness, ViolationPolicy
from tests.shared import make_patients_df

_LOGGER = logging.getLogger(__name__)

_PIPELINE_CONFIG = {
    "name": "k-anonymity",
    "stages": [
        {"type": "suppress", "attribute": "PatientID"},
        {
            "type": "generalize",
            "attribute": "PatientAge",
            "output_attribute": "AgeGroup",
            "rule": {
                "type": "cut_points",
                "cut_points": [40, 50],
                "labels": ["<40", "40-49", "50+"],
            },
        },
        {
            "type": "evaluate",
            "model": {"type": "k_anonymity", "k": 2},
            "quasi_identifiers": ["AgeGroup", "Gender"],
        },
    ],
}


class TestRuleConfig:
    """
    Tests for rule_from_config_json.
    """

    def test_ranges(self):
        rule = rule_from_config_json(
            {"type": "ranges", "bands": [[None, 40, "<40"], [40, 50, "40-49"], [50, None, "50+"]]}
        )
        assert isinstance(rule, RangeRule)
        assert rule.bands[0] == (-math.inf, 40.0, "<40")
        assert rule.bands[-1] == (50.0, math.inf, "50+")
        assert rule(49) == "40-49"

    def test_cut_points(self):
        rule = rule_from_config_json(
            {"type": "cut_points", "cut_points": [18], "labels": ["minor", "adult"], "lower": 0}
        )
        assert rule.bands == [(0.0, 18, "minor"), (18, math.inf, "adult")]

    def test_mapping_and_constant(self):
        rule = rule_from_config_json({"type": "mapping", "mapping": {"M": "*", "F": "*"}})
        assert isinstance(rule, MappingRule) and rule("F") == "*"
        rule = rule_from_config_json({"type": "constant", "label": "***"})
        assert isinstance(rule, ConstantRule) and rule("P001") == "***"

    def test_hierarchy(self, tmp_path):
        nested = {"Respiratory": ["Asthma", "Flu"], "Metabolic": ["Diabetes"]}
        rule = rule_from_config_json({"type": "hierarchy", "nested": nested, "level": 1})
        assert isinstance(rule, HierarchyRule) and rule("Flu") == "Respiratory"

        gtree = GTree.from_nested(nested)
        rule = rule_from_config_json(
            {"type": "hierarchy", "tree": gtree.to_config_json(), "level": 1}
        )
        assert rule("Diabetes") == "Metabolic"

        filename = generate_config_file(gtree, str(tmp_path / "diagnosis.json"))
        rule = rule_from_config_json({"type": "hierarchy", "tree_file": filename, "level": 0})
        assert rule("Asthma") == "*"

    @pytest.mark.parametrize(
        "json_obj",
        [
            {"type": "buckets"},
            {"bands": [[0, 1, "a"]]},
            "ranges",
            {"type": "ranges"},
            {"type": "ranges", "bands": [[0, 1, "a"]], "extra": 1},
            {"type": "ranges", "bands": [[0, 1]]},
            {"type": "ranges", "bands": [[0, 40, "a"], [45, 50, "b"]]},
            {"type": "cut_points", "cut_points": [40], "labels": ["a"]},
            {"type": "mapping", "mapping": []},
            {"type": "hierarchy", "level": 1},
            {"type": "hierarchy", "level": 1, "nested": {"A": ["a"]}, "tree": {}},
            {"type": "hierarchy", "level": 5, "nested": {"A": ["a"]}},
        ],
    )
    def test_invalid(self, json_obj):
        with pytest.raises(ConfigurationError):
            rule_from_config_json(json_obj)


class TestModelAndMechanismConfig:
    """
    Tests for model_from_config_json and mechanism_from_config_json.
    """

    def test_models(self):
        assert model_from_config_json({"type": "k_anonymity", "k": 3}) == KAnonymity(3)
        assert model_from_config_json(
            {"type": "l_diversity", "l": 2, "sensitive_attribute": "Diagnosis"}
        ) == LDiversity(2, "Diagnosis")
        model = model_from_config_json(
            {
                "type": "t_closeness",
                "t": 0.2,
                "sensitive_attribute": "Diagnosis",
                "global_distribution": {"Flu": 0.5, "Asthma": 0.5},
            }
        )
        assert isinstance(model, TCloseness)
        assert model.global_distribution == {"Flu": 0.5, "Asthma": 0.5}

    @pytest.mark.parametrize(
        "json_obj",
        [
            {"type": "k_anonymity", "k": 0},
            {"type": "k_anonymity"},
            {"type": "l_diversity", "l": 2},
            {"type": "t_closeness", "t": -1, "sensitive_attribute": "Diagnosis"},
            {"type": "delta_presence", "delta": 0.1},
        ],
    )
    def test_invalid_models(self, json_obj):
        with pytest.raises(ConfigurationError):
            model_from_config_json(json_obj)

    def test_mechanisms(self):
        assert isinstance(mechanism_from_config_json("laplace"), LaplaceMechanism)
        assert isinstance(mechanism_from_config_json({"type": "laplace"}), LaplaceMechanism)
        mechanism = mechanism_from_config_json({"type": "gaussian", "delta": 1e-5})
        assert isinstance(mechanism, GaussianMechanism) and mechanism.delta == 1e-5
        with pytest.raises(ConfigurationError):
            mechanism_from_config_json("exponential")
        with pytest.raises(ConfigurationError):
            mechanism_from_config_json({"type": "gaussian"})
        with pytest.raises(ConfigurationError):
            mechanism_from_config_json({"type": "gaussian", "delta": 2})


class TestStageAndPipelineConfig:
    """
    Tests for stage and pipeline configs.
    """

    def test_stages(self):
        stage = stage_from_config_json({"type": "suppress", "attribute": "PatientID", "mask": "X"})
        assert stage == SuppressStage("PatientID", mask="X")
        stage = stage_from_config_json(
            {"type": "swap", "attribute": "Diagnosis", "seed": 3, "name": "shuffle"}
        )
        assert stage == SwapStage("Diagnosis", 3, stage_name="shuffle")
        stage = stage_from_config_json(
            {
                "type": "noise",
                "attribute": "PatientAge",
                "epsilon": 1.0,
                "sensitivity": 1.0,
                "seed": 0,
                "mechanism": {"type": "gaussian", "delta": 1e-5},
            }
        )
        assert isinstance(stage, NoiseStage) and stage.mechanism.name == "gaussian"
        stage = stage_from_config_json(
            {
                "type": "evaluate",
                "model": {"type": "k_anonymity", "k": 2},
                "quasi_identifiers": ["Gender"],
                "policy": "reject",
            }
        )
        assert stage == EvaluateStage(KAnonymity(2), ("Gender",), policy=ViolationPolicy.REJECT)

    @pytest.mark.parametrize(
        "json_obj",
        [
            {"type": "swap", "attribute": "Diagnosis"},
            {"type": "swap", "attribute": "Diagnosis", "seed": None},
            {
                "type": "noise",
                "attribute": "PatientAge",
                "epsilon": 0,
                "sensitivity": 1,
                "seed": 0,
            },
            {
                "type": "evaluate",
                "model": {"type": "k_anonymity", "k": 2},
                "quasi_identifiers": [],
                "policy": "ignore",
            },
            {"type": "aggregate", "attribute": "PatientAge"},
        ],
    )
    def test_invalid_stages(self, json_obj):
        with pytest.raises(ConfigurationError):
            stage_from_config_json(json_obj)

    def test_pipeline(self):
        pipeline = pipeline_from_config_json(_PIPELINE_CONFIG)
        assert pipeline.name == "k-anonymity"
        output_df, verdicts = pipeline.run(_LOGGER, make_patients_df())
        assert verdicts[0].offending_classes == (("50+", "F"), ("40-49", "F"), ("50+", "M"))
        assert list(output_df.index) == [0, 1, 2, 4, 5, 6, 9]

    def test_pipeline_file(self, tmp_path):
        filename = generate_pipeline_config_file(_PIPELINE_CONFIG, str(tmp_path / "pipeline.json"))
        with open(filename) as config_file:
            assert json.load(config_file) == _PIPELINE_CONFIG
        pipeline = load_pipeline_config_file(filename)
        assert [stage.name for stage in pipeline.stages] == [
            "suppress:PatientID",
            "generalize:PatientAge",
            "evaluate:k-anonymity(k=2)",
        ]

    def test_invalid_pipeline_file(self, tmp_path):
        filename = tmp_path / "pipeline.json"
        filename.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_pipeline_config_file(str(filename))
        with pytest.raises(ConfigurationError):
            generate_pipeline_config_file({"name": "empty"}, str(tmp_path / "other.json"))
        assert not (tmp_path / "other.json").exists()
        with pytest.raises(ConfigurationError):
            pipeline_from_config_json({"name": "bad", "stages": {"type": "suppress"}})
