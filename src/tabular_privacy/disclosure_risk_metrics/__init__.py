"""
Disclosure risk metrics for measuring the privacy level an anonymized table achieves.

Where the privacy model evaluators answer "does this table satisfy the model
for a given parameter?", the metrics here report the strongest parameter the
table does satisfy. Lower k and l, or higher t, indicate higher disclosure
risk.

Functions
---------
calculate_l_k : Tuple[Optional[int], int]
    The table's actual (distinct) l-diversity and k-anonymity.

compute_entropy_l_diversity : Tuple[float, float, float]
    Entropy l-diversity (average, minimum, maximum) across equivalence classes.

calculate_t : float
    The table's actual t-closeness, the largest distance of any class from the
    global distribution.
"""

from .k_l_anonymity import calculate_l_k
from .l_diversity import compute_entropy_l_diversity
from .t_closeness import calculate_t

__all__ = [
    "calculate_l_k",
    "compute_entropy_l_diversity",
    "calculate_t",
]
