"""
JSON configuration of generalization rules, stages and pipelines.

A pipeline configuration looks like::

    {
        "name": "k-anonymity",
        "stages": [
            {"type": "suppress", "attribute": "PatientID", "mask": "***"},
            {
                "type": "generalize",
                "attribute": "PatientAge",
                "output_attribute": "AgeGroup",
                "rule": {"type": "cut_points", "cut_points": [40, 50],
                         "labels": ["<40", "40-49", "50+"]}
            },
            {
                "type": "evaluate",
                "model": {"type": "k_anonymity", "k": 2},
                "quasi_identifiers": ["AgeGroup", "Gender"],
                "policy": "drop"
            }
        ]
    }

Rule types are ``ranges``, ``cut_points``, ``mapping``, ``hierarchy`` and
``constant``; stage types are ``generalize``, ``suppress``, ``swap``,
``noise`` and ``evaluate``; model types are ``k_anonymity``,
``l_diversity`` and ``t_closeness``. Unknown types, unknown keys and missing
keys are configuration errors.
"""

import json
import math
import tempfile
from typing import Any, Optional

from tabular_privacy.constants import DEFAULT_MASK
from tabular_privacy.errors import ConfigurationError
from tabular_privacy.generalization import (
    ConstantRule,
    GeneralizationRule,
    HierarchyRule,
    MappingRule,
    RangeRule,
)
from tabular_privacy.gtrees import GTree, load_from_config_file
from tabular_privacy.noise import GaussianMechanism, LaplaceMechanism, NoiseMechanism
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


def _read(
    json_obj: Any, what: str, required: tuple[str, ...], optional: tuple[str, ...] = ()
) -> dict[str, Any]:
    """Check the keys of a config object and return it with missing optional keys as None."""
    if not isinstance(json_obj, dict):
        raise ConfigurationError(f"{what} config must be an object", value=json_obj)
    unknown = set(json_obj) - set(required) - set(optional) - {"type"}
    if unknown:
        raise ConfigurationError(f"Unknown keys in {what} config: {sorted(unknown)}")
    missing = [key for key in required if key not in json_obj]
    if missing:
        raise ConfigurationError(f"Missing keys in {what} config: {missing}")
    return {key: json_obj.get(key) for key in required + optional}


def _bound(value: Optional[float], default: float) -> float:
    return default if value is None else float(value)


def rule_from_config_json(json_obj: dict[str, Any]) -> GeneralizationRule:
    """
    Build a generalization rule from its config.

    ``ranges`` bands are ``[lower, upper, label]`` lists, where a null bound
    is unbounded. ``hierarchy`` takes either a ``tree`` (as written by
    GTree.to_config_json), a ``tree_file``, or a ``nested`` mapping of
    categories, plus a ``level``.
    """
    rule_type = json_obj.get("type") if isinstance(json_obj, dict) else None
    if rule_type == "ranges":
        config = _read(json_obj, "ranges rule", ("bands",))
        try:
            bands = [
                (_bound(lower, -math.inf), _bound(upper, math.inf), label)
                for lower, upper, label in config["bands"]
            ]
        except (TypeError, ValueError) as err:
            raise ConfigurationError(f"Malformed ranges rule bands: {err}") from err
        return RangeRule(bands)
    if rule_type == "cut_points":
        config = _read(json_obj, "cut_points rule", ("cut_points", "labels"), ("lower", "upper"))
        return RangeRule.from_cut_points(
            config["cut_points"],
            config["labels"],
            lower=_bound(config["lower"], -math.inf),
            upper=_bound(config["upper"], math.inf),
        )
    if rule_type == "mapping":
        config = _read(json_obj, "mapping rule", ("mapping",))
        if not isinstance(config["mapping"], dict):
            raise ConfigurationError("mapping rule mapping must be an object")
        return MappingRule(config["mapping"])
    if rule_type == "hierarchy":
        config = _read(json_obj, "hierarchy rule", ("level",), ("tree", "tree_file", "nested"))
        sources = [key for key in ("tree", "tree_file", "nested") if config[key] is not None]
        if len(sources) != 1:
            raise ConfigurationError(
                "hierarchy rule needs exactly one of tree, tree_file or nested"
            )
        if config["tree"] is not None:
            gtree = GTree(json_obj=config["tree"])
        elif config["tree_file"] is not None:
            gtree = load_from_config_file(config["tree_file"])
        else:
            gtree = GTree.from_nested(config["nested"])
        return HierarchyRule(gtree, config["level"])
    if rule_type == "constant":
        config = _read(json_obj, "constant rule", ("label",))
        return ConstantRule(config["label"])
    raise ConfigurationError("Unknown generalization rule type", value=rule_type)


def model_from_config_json(json_obj: dict[str, Any]) -> PrivacyModel:
    """Build a privacy model from its config."""
    model_type = json_obj.get("type") if isinstance(json_obj, dict) else None
    model: PrivacyModel
    if model_type == "k_anonymity":
        config = _read(json_obj, "k_anonymity model", ("k",))
        model = KAnonymity(config["k"])
    elif model_type == "l_diversity":
        config = _read(json_obj, "l_diversity model", ("l", "sensitive_attribute"))
        model = LDiversity(config["l"], config["sensitive_attribute"])
    elif model_type == "t_closeness":
        config = _read(
            json_obj, "t_closeness model", ("t", "sensitive_attribute"), ("global_distribution",)
        )
        model = TCloseness(
            config["t"],
            config["sensitive_attribute"],
            global_distribution=config["global_distribution"],
        )
    else:
        raise ConfigurationError("Unknown privacy model type", value=model_type)
    model.validate()
    return model


def mechanism_from_config_json(json_obj: Any) -> NoiseMechanism:
    """Build a noise mechanism from ``"laplace"`` or ``{"type": "gaussian", "delta": ...}``."""
    if json_obj == "laplace" or (isinstance(json_obj, dict) and json_obj.get("type") == "laplace"):
        if isinstance(json_obj, dict):
            _read(json_obj, "laplace mechanism", ())
        return LaplaceMechanism()
    if isinstance(json_obj, dict) and json_obj.get("type") == "gaussian":
        config = _read(json_obj, "gaussian mechanism", ("delta",))
        return GaussianMechanism(config["delta"])
    raise ConfigurationError("Unknown noise mechanism", value=json_obj)


def stage_from_config_json(json_obj: dict[str, Any]) -> Stage:
    """Build a pipeline stage from its config; ``name`` optionally overrides the stage name."""
    stage_type = json_obj.get("type") if isinstance(json_obj, dict) else None
    stage: Stage
    if stage_type == "generalize":
        config = _read(
            json_obj,
            "generalize stage",
            ("attribute", "rule"),
            ("output_attribute", "keep_original", "name"),
        )
        stage = GeneralizeStage(
            config["attribute"],
            rule_from_config_json(config["rule"]),
            output_attribute=config["output_attribute"],
            keep_original=bool(config["keep_original"]),
            stage_name=config["name"],
        )
    elif stage_type == "suppress":
        config = _read(json_obj, "suppress stage", ("attribute",), ("mask", "name"))
        stage = SuppressStage(
            config["attribute"],
            mask=config["mask"] if config["mask"] is not None else DEFAULT_MASK,
            stage_name=config["name"],
        )
    elif stage_type == "swap":
        config = _read(json_obj, "swap stage", ("attribute", "seed"), ("name",))
        stage = SwapStage(config["attribute"], config["seed"], stage_name=config["name"])
    elif stage_type == "noise":
        config = _read(
            json_obj,
            "noise stage",
            ("attribute", "epsilon", "sensitivity", "seed"),
            ("mechanism", "name"),
        )
        stage = NoiseStage(
            config["attribute"],
            config["epsilon"],
            config["sensitivity"],
            config["seed"],
            mechanism=(
                mechanism_from_config_json(config["mechanism"])
                if config["mechanism"] is not None
                else None
            ),
            stage_name=config["name"],
        )
    elif stage_type == "evaluate":
        config = _read(
            json_obj, "evaluate stage", ("model", "quasi_identifiers"), ("policy", "name")
        )
        try:
            policy = ViolationPolicy(config["policy"] or ViolationPolicy.DROP.value)
        except ValueError as err:
            raise ConfigurationError("Unknown violation policy", value=config["policy"]) from err
        stage = EvaluateStage(
            model_from_config_json(config["model"]),
            tuple(config["quasi_identifiers"]),
            policy=policy,
            stage_name=config["name"],
        )
    else:
        raise ConfigurationError("Unknown stage type", value=stage_type)
    stage.validate()
    return stage


def pipeline_from_config_json(json_obj: dict[str, Any]) -> Pipeline:
    """Build and validate a pipeline from its config."""
    config = _read(json_obj, "pipeline", ("name", "stages"))
    if not isinstance(config["stages"], list):
        raise ConfigurationError("pipeline stages must be a list")
    pipeline = Pipeline(
        str(config["name"]), tuple(stage_from_config_json(stage) for stage in config["stages"])
    )
    pipeline.validate()
    return pipeline


def load_pipeline_config_file(filename: str) -> Pipeline:
    """
    Load a pipeline from a JSON configuration file.

    Raises
    ------
    ConfigurationError
        If the file is not valid JSON or the configuration is invalid.
    """
    with open(filename) as config_file:
        try:
            json_obj = json.load(config_file)
        except json.JSONDecodeError as err:
            raise ConfigurationError(f"Pipeline config file {filename} is not JSON: {err}") from err
    return pipeline_from_config_json(json_obj)


def generate_pipeline_config_file(json_obj: dict[str, Any], filename: Optional[str] = None) -> str:
    """
    Validate a pipeline config and write it to a JSON file.

    Parameters
    ----------
    json_obj : Dict[str, Any]
        The pipeline config.
    filename : str, optional
        Path where the configuration should be written. If None, a temporary
        file will be created, by default None

    Returns
    -------
    str
        The path to the written configuration file
    """
    pipeline_from_config_json(json_obj)
    if filename is None:
        _, filename = tempfile.mkstemp(suffix=".json")
    with open(filename, "w") as config_file:
        json.dump(json_obj, config_file, indent=2)
    return filename
