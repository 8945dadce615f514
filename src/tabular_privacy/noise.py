"""
Noise mechanisms for differential privacy on a numeric attribute.

Noise is added once, independently to every record of one attribute. There
is no privacy budget accounting across queries.

Two mechanisms are provided. Each has its own relationship between epsilon,
sensitivity and the spread of the noise, and its own privacy guarantee, so
they are not interchangeable:

- LaplaceMechanism (the default): Laplace(0, b) noise with
  ``b = sensitivity / epsilon`` gives epsilon-differential privacy, where
  sensitivity is the L1 sensitivity.
- GaussianMechanism: Normal(0, sigma) noise with
  ``sigma = sensitivity * sqrt(2 * ln(1.25 / delta)) / epsilon`` gives
  (epsilon, delta)-differential privacy for epsilon < 1, where sensitivity
  is the L2 sensitivity.

References
----------
C. Dwork and A. Roth, "The Algorithmic Foundations of Differential Privacy,"
Foundations and Trends in Theoretical Computer Science, vol. 9, no. 3-4,
pp. 211-407, 2014. Theorems 3.6 and A.1.
"""

import logging
import math
from abc import ABC, abstractmethod
from numbers import Real
from typing import Any, Optional

import numpy as np
import pandas as pd

from tabular_privacy.errors import ConfigurationError, DomainError
from tabular_privacy.table import require_attributes
from tabular_privacy.utils import Seed, make_rng


def _check_positive_finite(param: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(value):
        raise ConfigurationError(f"{param} must be a number", value=value)
    if value <= 0 or math.isinf(value):
        raise ConfigurationError(f"{param} must be > 0 and finite", value=value)


class NoiseMechanism(ABC):
    """A zero-mean noise distribution calibrated by epsilon and sensitivity."""

    name: str = ""

    def validate(self) -> None:
        """Raise ConfigurationError if the mechanism's own parameters are invalid."""

    @abstractmethod
    def scale(self, epsilon: float, sensitivity: float) -> float:
        """The distribution's scale parameter for the given epsilon and sensitivity."""

    @abstractmethod
    def sample(self, rng: np.random.Generator, scale: float, size: int) -> np.ndarray:
        """Draw ``size`` independent samples with the given scale."""


class LaplaceMechanism(NoiseMechanism):
    """Laplace noise, epsilon-differentially private."""

    name = "laplace"

    def scale(self, epsilon: float, sensitivity: float) -> float:
        return sensitivity / epsilon

    def sample(self, rng: np.random.Generator, scale: float, size: int) -> np.ndarray:
        return rng.laplace(loc=0.0, scale=scale, size=size)

    def __repr__(self) -> str:
        return "LaplaceMechanism()"


class GaussianMechanism(NoiseMechanism):
    """
    Gaussian noise, (epsilon, delta)-differentially private.

    Parameters
    ----------
    delta : float
        Probability with which the epsilon guarantee may fail, ``0 < delta < 1``.

    Notes
    -----
    The calibration is only proven for epsilon < 1; larger epsilons are
    accepted but the guarantee then does not follow from it.
    """

    name = "gaussian"

    def __init__(self, delta: float) -> None:
        self.delta = delta
        self.validate()

    def validate(self) -> None:
        _check_positive_finite("delta", self.delta)
        if self.delta >= 1:
            raise ConfigurationError("delta must be < 1", value=self.delta)

    def scale(self, epsilon: float, sensitivity: float) -> float:
        return sensitivity * math.sqrt(2.0 * math.log(1.25 / self.delta)) / epsilon

    def sample(self, rng: np.random.Generator, scale: float, size: int) -> np.ndarray:
        return rng.normal(loc=0.0, scale=scale, size=size)

    def __repr__(self) -> str:
        return f"GaussianMechanism(delta={self.delta})"


def validate_noise_parameters(
    epsilon: float, sensitivity: float, mechanism: Optional[NoiseMechanism] = None
) -> None:
    """
    Check noise parameters without touching any data.

    Raises
    ------
    ConfigurationError
        If epsilon or sensitivity is not a positive finite number, or the
        mechanism is invalid.
    """
    _check_positive_finite("epsilon", epsilon)
    _check_positive_finite("sensitivity", sensitivity)
    if mechanism is not None:
        if not isinstance(mechanism, NoiseMechanism):
            raise ConfigurationError("Unknown noise mechanism", value=mechanism)
        mechanism.validate()


def add_noise(
    logger: logging.Logger,
    input_df: pd.DataFrame,
    attribute: str,
    epsilon: float,
    sensitivity: float,
    seed: Optional[Seed],
    mechanism: Optional[NoiseMechanism] = None,
) -> pd.DataFrame:
    """
    Add calibrated zero-mean noise to every value of a numeric attribute.

    Parameters
    ----------
    logger : logging.Logger
        Logger for recording the transform
    input_df : pd.DataFrame
        Table to perturb; it is not modified.
    attribute : str
        Numeric attribute to perturb.
    epsilon : float
        Privacy parameter, > 0. Smaller epsilon means more noise.
    sensitivity : float
        Largest change of the attribute's contribution that one record can
        cause, > 0.
    seed : int or np.random.Generator
        Source of randomness.
    mechanism : Optional[NoiseMechanism], default=None
        Noise distribution; LaplaceMechanism if None.

    Returns
    -------
    pd.DataFrame
        A new table where ``attribute`` holds ``value + noise`` as floats.
        Missing values stay missing.

    Raises
    ------
    ConfigurationError
        If epsilon, sensitivity, the mechanism or the seed is invalid.
    SchemaError
        If ``attribute`` is absent.
    DomainError
        If ``attribute`` is not numeric.
    """
    mechanism = mechanism if mechanism is not None else LaplaceMechanism()
    validate_noise_parameters(epsilon, sensitivity, mechanism)
    require_attributes(input_df, [attribute])
    column = input_df[attribute]
    if not pd.api.types.is_numeric_dtype(column) or pd.api.types.is_bool_dtype(column):
        raise DomainError(f"Attribute dtype ({column.dtype}) is not numeric", attribute=attribute)
    rng = make_rng(seed, attribute=attribute)

    scale = mechanism.scale(epsilon, sensitivity)
    noise = mechanism.sample(rng, scale, len(input_df))
    output_df = input_df.copy()
    output_df[attribute] = column.to_numpy(dtype=float, na_value=np.nan) + noise
    logger.debug(
        "Added %s noise to %s: epsilon=%s, sensitivity=%s, scale=%s",
        mechanism.name,
        attribute,
        epsilon,
        sensitivity,
        scale,
    )
    return output_df
