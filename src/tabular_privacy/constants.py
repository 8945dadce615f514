"""
Shared constants for tabular_privacy.

This module defines constants used across the transforms and privacy model
evaluators for consistency in float comparisons, random number generation
and masking.
"""

import math

import numpy as np

# Used to determine equality of floats, e.g. proportions in t-closeness
MAXIMUM_PRECISION_DIGITS: int = 8
EPSILON: float = math.pow(10, -MAXIMUM_PRECISION_DIGITS)

MAX_RANDOM_STATE: int = 2**31 - 1
NOT_DEFINED_NA: float = np.nan

DEFAULT_MASK: str = "***"

GTREE_ROOT_TAG: str = "*"
