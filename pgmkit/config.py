"""
pgmkit/config.py

Validated configuration records for nodes and hidden Markov models.

Options are passed as keywords and checked against the recognized names
at construction time, so a misspelled option fails loudly instead of
being silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Tuple

import numpy as np

from pgmkit.errors import ConfigurationError, ShapeMismatch

if TYPE_CHECKING:
    from pgmkit.graph.node import Node


class NodeKind(Enum):
    """Role of a node in a graph."""
    VARIABLE = "variable"
    FACTOR = "factor"

    @classmethod
    def coerce(cls, kind: Any) -> "NodeKind":
        if isinstance(kind, cls):
            return kind
        try:
            return cls(str(kind).lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown node type {kind!r}; expected 'variable' or 'factor'"
            ) from None


def _check_options(owner: str, options: dict, recognized: Tuple[str, ...]) -> None:
    unknown = sorted(set(options) - set(recognized))
    if unknown:
        raise ConfigurationError(
            f"Unknown {owner} option(s) {unknown}; recognized: {list(recognized)}"
        )


@dataclass(frozen=True)
class NodeConfig:
    """
    Structural options of a Node.

    Attributes:
        values: Ordered domain (defaults to the boolean class True/False)
        kind: VARIABLE or FACTOR
        parents: Parent nodes, in order
    """
    values: Tuple[Any, ...] = (True, False)
    kind: NodeKind = NodeKind.VARIABLE
    parents: Tuple["Node", ...] = ()

    OPTIONS = ("values", "type", "parents")

    @classmethod
    def from_options(cls, **options: Any) -> "NodeConfig":
        return cls().merge(**options)

    def merge(self, **options: Any) -> "NodeConfig":
        """Return a copy with the given options applied."""
        _check_options("node", options, self.OPTIONS)
        changes = {}
        if "values" in options:
            values = options["values"]
            if isinstance(values, (str, bytes)) or not hasattr(values, "__iter__"):
                raise ConfigurationError(f"'values' must be a sequence, got {values!r}")
            changes["values"] = tuple(values)
        if "type" in options:
            changes["kind"] = NodeKind.coerce(options["type"])
        if "parents" in options:
            parents = options["parents"]
            if parents is None:
                parents = ()
            if not hasattr(parents, "__iter__"):
                parents = (parents,)
            changes["parents"] = tuple(parents)
        return replace(self, **changes)


@dataclass(frozen=True, eq=False)
class MarkovConfig:
    """
    Parameters of a hidden Markov model with Gaussian emissions.

    Shapes (S states, D observed dimensions):
        init_prob: (S,)
        tran_prob: (S, S), row-stochastic
        mu: (S, D), emission mean per state
        sigma: (D, D, S), emission covariance per state
    """
    num_states: int
    num_observed: int
    state_names: Tuple[str, ...]
    observed_names: Tuple[str, ...]
    init_prob: np.ndarray
    tran_prob: np.ndarray
    mu: np.ndarray
    sigma: np.ndarray

    OPTIONS = (
        "num_states",
        "num_observed",
        "state_names",
        "observed_names",
        "init_prob",
        "tran_prob",
        "mu",
        "sigma",
    )

    @classmethod
    def from_options(cls, **options: Any) -> "MarkovConfig":
        _check_options("markov", options, cls.OPTIONS)
        for required in ("init_prob", "tran_prob", "mu"):
            if options.get(required) is None:
                raise ConfigurationError(f"Missing required markov option {required!r}")

        init_prob = np.array(options["init_prob"], dtype=np.float64)
        tran_prob = np.array(options["tran_prob"], dtype=np.float64)
        mu = np.atleast_2d(np.array(options["mu"], dtype=np.float64))

        S = _positive_int("num_states", options.get("num_states"), init_prob.shape[0] if init_prob.ndim else 0)
        D = _positive_int("num_observed", options.get("num_observed"), mu.shape[1])

        sigma = options.get("sigma")
        if sigma is None:
            sigma = np.repeat(np.eye(D)[:, :, None], S, axis=2)
        sigma = np.array(sigma, dtype=np.float64)

        _expect_shape("init_prob", init_prob, (S,))
        _expect_shape("tran_prob", tran_prob, (S, S))
        _expect_shape("mu", mu, (S, D))
        _expect_shape("sigma", sigma, (D, D, S))

        state_names = _names("state_names", options.get("state_names"), S, "S")
        observed_names = _names("observed_names", options.get("observed_names"), D, "O")

        for arr in (init_prob, tran_prob, mu, sigma):
            arr.setflags(write=False)

        return cls(
            num_states=S,
            num_observed=D,
            state_names=state_names,
            observed_names=observed_names,
            init_prob=init_prob,
            tran_prob=tran_prob,
            mu=mu,
            sigma=sigma,
        )


def _positive_int(name: str, value: Optional[Any], inferred: int) -> int:
    if value is None:
        value = inferred
    if isinstance(value, bool) or int(value) != value or int(value) <= 0:
        raise ConfigurationError(f"{name!r} must be a positive integer, got {value!r}")
    return int(value)


def _expect_shape(name: str, arr: np.ndarray, shape: Tuple[int, ...]) -> None:
    if arr.shape != shape:
        raise ShapeMismatch(f"{name!r} has shape {arr.shape}, expected {shape}")


def _names(option: str, names: Optional[Any], n: int, prefix: str) -> Tuple[str, ...]:
    if names is None:
        return tuple(f"{prefix}{i + 1}" for i in range(n))
    names = tuple(names)
    if len(names) != n:
        raise ShapeMismatch(f"{option!r} has {len(names)} entries, expected {n}")
    return names
