"""
Shared utility functions for the transforms and privacy model evaluators.

This module includes:

- Callbacks for timing pipeline stages
- Construction of seeded random number generators
- Small numerical kernels used when comparing distributions
"""

import time
from typing import Optional, Union

import numba
import numpy as np

from tabular_privacy.errors import ConfigurationError

Seed = Union[int, np.random.Generator]


class PipelineCallbacks:
    """
    Callback mechanism for tracking and instrumentation of pipeline runs.

    Records a timestamp before and after every stage. Users can extend this
    class to add custom tracking by overriding the callback methods.

    Attributes
    ----------
    timestamps : dict
        Maps ``(stage_name, event)`` to a timestamp, where event is ``"bm"``
        ("before method") or ``"am"`` ("after method"). The whole run is
        recorded under the stage name ``"run"``.

    Examples
    --------
    >>> class PrintingCallbacks(PipelineCallbacks):
    ...     def stage_am(self, stage_name):
    ...         super().stage_am(stage_name)
    ...         print(f"{stage_name} took {self.duration(stage_name):.2f} seconds")
    """

    def __init__(self) -> None:
        self.timestamps: dict[tuple[str, str], float] = {}

    def run_bm(self) -> None:
        self.timestamps[("run", "bm")] = time.time()

    def run_am(self) -> None:
        self.timestamps[("run", "am")] = time.time()

    def stage_bm(self, stage_name: str) -> None:
        self.timestamps[(stage_name, "bm")] = time.time()

    def stage_am(self, stage_name: str) -> None:
        self.timestamps[(stage_name, "am")] = time.time()

    def duration(self, stage_name: str) -> Optional[float]:
        """Seconds spent in ``stage_name``, or None if it did not finish."""
        before = self.timestamps.get((stage_name, "bm"))
        after = self.timestamps.get((stage_name, "am"))
        if before is None or after is None:
            return None
        return after - before


def make_rng(seed: Optional[Seed], attribute: Optional[str] = None) -> np.random.Generator:
    """
    Create the random number generator for a randomized transform.

    Parameters
    ----------
    seed : int or np.random.Generator
        Either a non-negative integer seed or an existing generator, which is
        returned as is so that callers can thread one generator through
        several transforms.
    attribute : Optional[str], default=None
        Attribute being transformed, for error context.

    Returns
    -------
    np.random.Generator
        A generator whose stream is fully determined by ``seed``.

    Raises
    ------
    ConfigurationError
        If ``seed`` is None or not a valid seed. Transforms are never seeded
        from the clock.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    if seed is None:
        raise ConfigurationError(
            "A seed or np.random.Generator is required for randomized transforms",
            attribute=attribute,
        )
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0:
        raise ConfigurationError(
            "Seed must be a non-negative integer", attribute=attribute, value=seed
        )
    return np.random.default_rng(int(seed))


@numba.jit(nopython=True)
def max_abs_difference(x: np.ndarray, y: np.ndarray) -> float:
    """
    Calculate the largest elementwise absolute difference between two arrays.

    Used to compare a local distribution to the global one, where ``x[i]`` and
    ``y[i]`` are the proportions of the same sensitive value.

    Parameters
    ----------
    x : np.ndarray
        First array of proportions.
    y : np.ndarray
        Second array of proportions, same length as ``x``.

    Returns
    -------
    float
        ``max(|x[i] - y[i]|)``, or 0.0 for empty arrays.

    Examples
    --------
    >>> max_abs_difference(np.array([0.5, 0.5]), np.array([0.25, 0.75]))
    0.25
    """
    maximum = 0.0
    for i in range(len(x)):
        diff = abs(x[i] - y[i])
        if diff > maximum:
            maximum = diff
    return maximum
