"""
Pipeline orchestration: compose transforms and evaluations into a technique.

A pipeline is a named, ordered sequence of stages. Each stage consumes the
previous stage's output table and produces a new one; evaluation stages also
produce a PrivacyVerdict. Every stage is validated before the first one runs,
so configuration errors never leave a partially applied pipeline. A failure in
any stage aborts the run and surfaces that stage's exception, annotated with
the stage name.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import pandas as pd

from tabular_privacy.constants import DEFAULT_MASK
from tabular_privacy.errors import AnonymizationError, ConfigurationError
from tabular_privacy.generalization import GeneralizationRule, generalize
from tabular_privacy.noise import NoiseMechanism, add_noise, validate_noise_parameters
from tabular_privacy.privacy_models import (
    PrivacyModel,
    PrivacyVerdict,
    TCloseness,
    ViolationPolicy,
    compute_distribution,
    evaluate,
)
from tabular_privacy.suppression import suppress
from tabular_privacy.swapping import swap
from tabular_privacy.utils import PipelineCallbacks, Seed, make_rng


class Stage(ABC):
    """One step of a pipeline."""

    stage_name: Optional[str]

    @property
    @abstractmethod
    def default_name(self) -> str:
        """Name used when no stage_name is configured."""

    @property
    def name(self) -> str:
        return self.stage_name if self.stage_name is not None else self.default_name

    @abstractmethod
    def validate(self) -> None:
        """Raise ConfigurationError if the stage is misconfigured."""

    def prepare(self, original_df: pd.DataFrame) -> "Stage":
        """Bind anything the stage needs from the pipeline's input table."""
        return self

    @abstractmethod
    def apply(
        self, logger: logging.Logger, input_df: pd.DataFrame
    ) -> tuple[pd.DataFrame, Optional[PrivacyVerdict]]:
        """Run the stage on ``input_df``."""


@dataclass(frozen=True)
class GeneralizeStage(Stage):
    attribute: str
    rule: GeneralizationRule
    output_attribute: Optional[str] = None
    keep_original: bool = False
    stage_name: Optional[str] = None

    @property
    def default_name(self) -> str:
        return f"generalize:{self.attribute}"

    def validate(self) -> None:
        if not isinstance(self.rule, GeneralizationRule):
            raise ConfigurationError("Not a generalization rule", attribute=self.attribute)
        self.rule.validate()
        if self.keep_original and self.output_attribute in (None, self.attribute):
            raise ConfigurationError(
                "keep_original requires a distinct output_attribute", attribute=self.attribute
            )

    def apply(
        self, logger: logging.Logger, input_df: pd.DataFrame
    ) -> tuple[pd.DataFrame, Optional[PrivacyVerdict]]:
        output_df = generalize(
            logger,
            input_df,
            self.attribute,
            self.rule,
            output_attribute=self.output_attribute,
            keep_original=self.keep_original,
        )
        return output_df, None


@dataclass(frozen=True)
class SuppressStage(Stage):
    attribute: str
    mask: Any = DEFAULT_MASK
    stage_name: Optional[str] = None

    @property
    def default_name(self) -> str:
        return f"suppress:{self.attribute}"

    def validate(self) -> None:
        pass

    def apply(
        self, logger: logging.Logger, input_df: pd.DataFrame
    ) -> tuple[pd.DataFrame, Optional[PrivacyVerdict]]:
        return suppress(logger, input_df, self.attribute, mask=self.mask), None


@dataclass(frozen=True)
class SwapStage(Stage):
    attribute: str
    seed: Optional[Seed]
    stage_name: Optional[str] = None

    @property
    def default_name(self) -> str:
        return f"swap:{self.attribute}"

    def validate(self) -> None:
        make_rng(self.seed, attribute=self.attribute)

    def apply(
        self, logger: logging.Logger, input_df: pd.DataFrame
    ) -> tuple[pd.DataFrame, Optional[PrivacyVerdict]]:
        return swap(logger, input_df, self.attribute, self.seed), None


@dataclass(frozen=True)
class NoiseStage(Stage):
    attribute: str
    epsilon: float
    sensitivity: float
    seed: Optional[Seed]
    mechanism: Optional[NoiseMechanism] = None
    stage_name: Optional[str] = None

    @property
    def default_name(self) -> str:
        return f"noise:{self.attribute}"

    def validate(self) -> None:
        validate_noise_parameters(self.epsilon, self.sensitivity, self.mechanism)
        make_rng(self.seed, attribute=self.attribute)

    def apply(
        self, logger: logging.Logger, input_df: pd.DataFrame
    ) -> tuple[pd.DataFrame, Optional[PrivacyVerdict]]:
        output_df = add_noise(
            logger,
            input_df,
            self.attribute,
            self.epsilon,
            self.sensitivity,
            self.seed,
            mechanism=self.mechanism,
        )
        return output_df, None


@dataclass(frozen=True)
class EvaluateStage(Stage):
    model: PrivacyModel
    quasi_identifiers: tuple[str, ...]
    policy: ViolationPolicy = ViolationPolicy.DROP
    stage_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quasi_identifiers", tuple(self.quasi_identifiers))

    @property
    def default_name(self) -> str:
        return f"evaluate:{self.model.name}" if isinstance(self.model, PrivacyModel) else "evaluate"

    def validate(self) -> None:
        if not isinstance(self.model, PrivacyModel):
            raise ConfigurationError("Not a privacy model", value=self.model)
        self.model.validate()
        try:
            ViolationPolicy(self.policy)
        except ValueError as err:
            raise ConfigurationError("Unknown violation policy", value=self.policy) from err

    def prepare(self, original_df: pd.DataFrame) -> "Stage":
        # t-closeness compares against the distribution before any transform
        if isinstance(self.model, TCloseness) and self.model.global_distribution is None:
            global_distribution = compute_distribution(
                original_df, self.model.sensitive_attribute
            )
            if global_distribution is not None:
                return EvaluateStage(
                    self.model.with_global_distribution(global_distribution),
                    self.quasi_identifiers,
                    policy=self.policy,
                    stage_name=self.stage_name,
                )
        return self

    def apply(
        self, logger: logging.Logger, input_df: pd.DataFrame
    ) -> tuple[pd.DataFrame, Optional[PrivacyVerdict]]:
        return evaluate(logger, input_df, self.quasi_identifiers, self.model, policy=self.policy)


def _annotate(err: AnonymizationError, stage: Stage) -> None:
    if err.stage is None:
        err.stage = stage.name


@dataclass(frozen=True)
class Pipeline:
    """
    A named technique: an ordered sequence of stages.

    Examples
    --------
    >>> pipeline = Pipeline(
    ...     "k-anonymity",
    ...     [
    ...         GeneralizeStage("PatientAge", age_rule, output_attribute="AgeGroup"),
    ...         EvaluateStage(KAnonymity(2), ["AgeGroup", "Gender"]),
    ...     ],
    ... )
    >>> output_df, verdicts = pipeline.run(logger, input_df)
    """

    name: str
    stages: tuple[Stage, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "stages", tuple(self.stages))

    def validate(self) -> None:
        """
        Validate every stage.

        Raises
        ------
        ConfigurationError
            If a stage is misconfigured; the error names the stage.
        """
        for stage in self.stages:
            if not isinstance(stage, Stage):
                raise ConfigurationError(f"Not a pipeline stage in {self.name}", value=stage)
            try:
                stage.validate()
            except AnonymizationError as err:
                _annotate(err, stage)
                raise

    def run(
        self,
        logger: logging.Logger,
        input_df: pd.DataFrame,
        callbacks: Optional[PipelineCallbacks] = None,
    ) -> tuple[pd.DataFrame, list[PrivacyVerdict]]:
        """
        Run the pipeline on a table.

        Parameters
        ----------
        logger : logging.Logger
            Logger for recording the run
        input_df : pd.DataFrame
            Table to anonymize; it is not modified.
        callbacks : Optional[PipelineCallbacks], default=None
            Optional callback object for timing the stages

        Returns
        -------
        Tuple[pd.DataFrame, List[PrivacyVerdict]]
            The last stage's output table and the verdicts of the evaluation
            stages, in stage order.

        Raises
        ------
        AnonymizationError
            The first error raised by validation or a stage, with its
            ``stage`` set.
        """
        self.validate()
        prepared: list[Stage] = []
        for stage in self.stages:
            try:
                prepared.append(stage.prepare(input_df))
            except AnonymizationError as err:
                _annotate(err, stage)
                raise

        if callbacks is not None:
            callbacks.run_bm()
        logger.info(
            "Running pipeline %s: %d stages on %d records", self.name, len(prepared), len(input_df)
        )
        output_df = input_df
        verdicts: list[PrivacyVerdict] = []
        for i, stage in enumerate(prepared):
            logger.debug("%s - stage %d/%d %s", self.name, i + 1, len(prepared), stage.name)
            if callbacks is not None:
                callbacks.stage_bm(stage.name)
            try:
                output_df, verdict = stage.apply(logger, output_df)
            except AnonymizationError as err:
                _annotate(err, stage)
                logger.error("%s - stage %s failed: %s", self.name, stage.name, err)
                raise
            if callbacks is not None:
                callbacks.stage_am(stage.name)
            if verdict is not None:
                verdicts.append(verdict)
        if callbacks is not None:
            callbacks.run_am()
        if output_df is input_df:
            output_df = input_df.copy()
        logger.info(
            "Pipeline %s finished: %d records out, %d of %d evaluations satisfied",
            self.name,
            len(output_df),
            sum(verdict.satisfied for verdict in verdicts),
            len(verdicts),
        )
        return output_df, verdicts


def run(
    logger: logging.Logger,
    input_df: pd.DataFrame,
    stages: Sequence[Stage],
    callbacks: Optional[PipelineCallbacks] = None,
    name: str = "pipeline",
) -> tuple[pd.DataFrame, list[PrivacyVerdict]]:
    """
    Run an ad hoc sequence of stages; see Pipeline.run.
    """
    return Pipeline(name, tuple(stages)).run(logger, input_df, callbacks=callbacks)


def verdicts_satisfied(verdicts: Union[Sequence[PrivacyVerdict], PrivacyVerdict]) -> bool:
    """Whether every verdict of a run is satisfied."""
    if isinstance(verdicts, PrivacyVerdict):
        return verdicts.satisfied
    return all(verdict.satisfied for verdict in verdicts)
