"""
Tests for generalization
"""

import logging
import math

import numpy as np
import pandas as pd
import pytest

from tabular_privacy.errors import ConfigurationError, DomainError, SchemaError
from tabular_privacy.generalization import (
    ConstantRule,
    HierarchyRule,
    MappingRule,
    RangeRule,
    generalize,
)
from tabular_privacy.gtrees import GTree
from tabular_privacy.pandas_utils import hash_df
from tests.shared import make_age_rule, make_patients_df

_LOGGER = logging.getLogger(__name__)


class TestRangeRule:
    """
    Tests for RangeRule.
    """

    def test_band_boundaries(self):
        rule = make_age_rule()
        assert rule(39) == "<40"
        assert rule(39.999) == "<40"
        assert rule(40) == "40-49"
        assert rule(49.5) == "40-49"
        assert rule(50) == "50+"
        assert rule(-5) == "<40"
        assert rule(np.int64(120)) == "50+"
        assert rule.labels == {"<40", "40-49", "50+"}

    def test_from_cut_points(self):
        rule = RangeRule.from_cut_points([40, 50], ["<40", "40-49", "50+"])
        assert rule.bands == [(-math.inf, 40, "<40"), (40, 50, "40-49"), (50, math.inf, "50+")]
        with pytest.raises(ConfigurationError):
            RangeRule.from_cut_points([40, 50], ["<40", "40+"])

    def test_bounded_domain(self):
        rule = RangeRule([(0, 40, "<40"), (40, 50, "40-49"), (50, 120, "50+")])
        assert rule(0) == "<40"
        with pytest.raises(DomainError):
            rule(120)
        with pytest.raises(DomainError):
            rule(-1)

    def test_malformed_bands(self):
        with pytest.raises(ConfigurationError):
            RangeRule([])
        with pytest.raises(ConfigurationError, match="gap"):
            RangeRule([(0, 40, "a"), (41, 50, "b")])
        with pytest.raises(ConfigurationError, match="overlap"):
            RangeRule([(0, 45, "a"), (40, 50, "b")])
        with pytest.raises(ConfigurationError, match="overlap"):
            RangeRule([(40, 50, "b"), (0, 40, "a")])
        with pytest.raises(ConfigurationError):
            RangeRule([(40, 40, "empty")])
        with pytest.raises(ConfigurationError):
            RangeRule([("a", "b", "c")])

    def test_values_outside_domain(self):
        rule = make_age_rule()
        with pytest.raises(DomainError):
            rule(float("nan"))
        with pytest.raises(DomainError):
            rule("34")
        with pytest.raises(DomainError):
            rule(True)


class TestMappingAndHierarchyRules:
    """
    Tests for MappingRule, HierarchyRule and ConstantRule.
    """

    def test_mapping_rule(self):
        rule = MappingRule({"M": "Male", "F": "Female"})
        assert rule("M") == "Male"
        assert rule.labels == {"Male", "Female"}
        with pytest.raises(DomainError) as excinfo:
            rule("X")
        assert excinfo.value.value == "X"
        with pytest.raises(DomainError):
            rule(["unhashable"])
        with pytest.raises(ConfigurationError):
            MappingRule({})

    def test_hierarchy_rule(self):
        gtree = GTree.from_nested({"Respiratory": ["Asthma", "Flu"], "Metabolic": ["Diabetes"]})
        assert HierarchyRule(gtree, 0)("Flu") == "*"
        assert HierarchyRule(gtree, 1)("Flu") == "Respiratory"
        assert HierarchyRule(gtree, 1)("Diabetes") == "Metabolic"
        assert HierarchyRule(gtree, 2)("Asthma") == "Asthma"
        # already generalized values stay as they are
        assert HierarchyRule(gtree, 1)("Respiratory") == "Respiratory"
        assert HierarchyRule(gtree, 1).labels == {"*", "Respiratory", "Metabolic"}
        with pytest.raises(DomainError):
            HierarchyRule(gtree, 1)("Cancer")

    def test_hierarchy_rule_invalid(self):
        gtree = GTree.from_nested({"Respiratory": ["Asthma", "Flu"]})
        with pytest.raises(ConfigurationError):
            HierarchyRule(gtree, 3)
        with pytest.raises(ConfigurationError):
            HierarchyRule(gtree, -1)
        with pytest.raises(ConfigurationError):
            HierarchyRule(GTree(), 0)
        duplicate_leaves = GTree.from_nested({"A": ["x"], "B": ["x"]})
        with pytest.raises(ConfigurationError):
            HierarchyRule(duplicate_leaves, 1)

    def test_constant_rule(self):
        rule = ConstantRule("***")
        assert rule("anything") == "***"
        assert rule(float("nan")) == "***"
        assert rule.labels == {"***"}


class TestGeneralize:
    """
    Tests for generalize.
    """

    def test_patient_age_groups(self):
        """Ages 34, 29, 38, 31, 37 are <40; 45, 42, 46 are 40-49; 50, 55 are 50+."""
        input_df = make_patients_df()
        output_df = generalize(
            _LOGGER, input_df, "PatientAge", make_age_rule(), output_attribute="AgeGroup"
        )
        assert list(output_df.columns) == ["PatientID", "AgeGroup", "Gender", "Diagnosis"]
        assert list(output_df["AgeGroup"]) == [
            "<40",
            "<40",
            "40-49",
            "50+",
            "<40",
            "40-49",
            "<40",
            "40-49",
            "50+",
            "<40",
        ]
        counts = output_df["AgeGroup"].value_counts().to_dict()
        assert counts == {"<40": 5, "40-49": 3, "50+": 2}
        pd.testing.assert_frame_equal(
            output_df[["PatientID", "Gender", "Diagnosis"]],
            input_df[["PatientID", "Gender", "Diagnosis"]],
        )

    def test_replace_in_place(self):
        input_df = make_patients_df()
        output_df = generalize(_LOGGER, input_df, "PatientAge", make_age_rule())
        assert list(output_df.columns) == list(input_df.columns)
        assert output_df["PatientAge"].iloc[0] == "<40"

    def test_keep_original(self):
        input_df = make_patients_df()
        output_df = generalize(
            _LOGGER,
            input_df,
            "PatientAge",
            make_age_rule(),
            output_attribute="AgeGroup",
            keep_original=True,
        )
        assert list(output_df.columns) == [
            "PatientID",
            "PatientAge",
            "AgeGroup",
            "Gender",
            "Diagnosis",
        ]
        assert list(output_df["PatientAge"]) == list(input_df["PatientAge"])
        with pytest.raises(ConfigurationError):
            generalize(_LOGGER, input_df, "PatientAge", make_age_rule(), keep_original=True)

    def test_input_not_modified(self):
        input_df = make_patients_df()
        before = hash_df(input_df)
        generalize(_LOGGER, input_df, "PatientAge", make_age_rule(), output_attribute="AgeGroup")
        generalize(_LOGGER, input_df, "PatientAge", make_age_rule())
        assert hash_df(input_df) == before

    def test_unmapped_value_fails(self):
        input_df = make_patients_df()
        input_df.loc[3, "PatientAge"] = 130
        rule = RangeRule([(0, 40, "<40"), (40, 50, "40-49"), (50, 120, "50+")])
        with pytest.raises(DomainError) as excinfo:
            generalize(_LOGGER, input_df, "PatientAge", rule)
        assert excinfo.value.attribute == "PatientAge"
        assert excinfo.value.value == 130

    def test_missing_value_fails(self):
        input_df = make_patients_df()
        input_df["PatientAge"] = input_df["PatientAge"].astype(float)
        input_df.loc[0, "PatientAge"] = np.nan
        with pytest.raises(DomainError):
            generalize(_LOGGER, input_df, "PatientAge", make_age_rule())

    def test_schema_errors(self):
        input_df = make_patients_df()
        with pytest.raises(SchemaError) as excinfo:
            generalize(_LOGGER, input_df, "Age", make_age_rule())
        assert excinfo.value.attribute == "Age"
        with pytest.raises(SchemaError):
            generalize(_LOGGER, input_df, "PatientAge", make_age_rule(), output_attribute="Gender")

    def test_empty_table(self):
        input_df = make_patients_df().iloc[0:0]
        output_df = generalize(
            _LOGGER, input_df, "PatientAge", make_age_rule(), output_attribute="AgeGroup"
        )
        assert len(output_df) == 0
        assert list(output_df.columns) == ["PatientID", "AgeGroup", "Gender", "Diagnosis"]

    def test_index_preserved(self):
        input_df = make_patients_df().set_index("PatientID")
        output_df = generalize(_LOGGER, input_df, "Gender", MappingRule({"M": "*", "F": "*"}))
        assert list(output_df.index) == list(input_df.index)
        assert set(output_df["Gender"]) == {"*"}
