"""
pgmkit/algebra/semiring.py

Aggregation policies for factor marginalization.

Both policies share ordinary multiplication as ⊗ and differ in ⊕:
- SUM_PRODUCT: ⊕ = +    (marginal probabilities)
- MAX_PRODUCT: ⊕ = max  (most probable explanation)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Union

import numpy as np


class Mode(Enum):
    """Evaluation mode selecting the marginalization policy."""
    SUM_PRODUCT = "sum"
    MAX_PRODUCT = "max"

    @classmethod
    def coerce(cls, mode: Union["Mode", str]) -> "Mode":
        if isinstance(mode, cls):
            return mode
        for m in cls:
            if mode in (m.value, m.name, m.name.lower()):
                return m
        raise ValueError(f"Unknown evaluation mode: {mode!r}")


@dataclass(frozen=True)
class Semiring:
    """
    Numpy-backed marginalization policy.

    Multiplication is ordinary elementwise product for both policies and
    is done by FactorTable.multiply directly; only ⊕ varies.

    Attributes:
        name: Identifier for the policy
        add_reduce: ⊕ reduction over axes
    """
    name: str
    add_reduce: Callable[[np.ndarray, Optional[Tuple[int, ...]]], np.ndarray]


def sum_product() -> Semiring:
    """Create the sum-product runtime."""
    return Semiring(
        name="SUM",
        add_reduce=lambda x, axis: np.sum(x, axis=axis),
    )


def max_product() -> Semiring:
    """Create the max-product runtime."""
    return Semiring(
        name="MAX",
        add_reduce=lambda x, axis: np.max(x, axis=axis),
    )


_RUNTIMES = {
    Mode.SUM_PRODUCT: sum_product(),
    Mode.MAX_PRODUCT: max_product(),
}


def semiring_for(mode: Union[Mode, str]) -> Semiring:
    """Return the runtime implementing the given mode."""
    return _RUNTIMES[Mode.coerce(mode)]
