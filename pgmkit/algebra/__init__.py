"""
pgmkit/algebra

Factor tables and aggregation policies.
"""

from pgmkit.algebra.factor import FactorTable, domain_index
from pgmkit.algebra.semiring import (
    Mode,
    Semiring,
    max_product,
    semiring_for,
    sum_product,
)

__all__ = [
    "FactorTable",
    "domain_index",
    "Mode",
    "Semiring",
    "max_product",
    "semiring_for",
    "sum_product",
]
