"""
pgmkit/algebra/factor.py

FactorTable: a non-negative weight for every assignment of an ordered set
of discrete variables.

Key operations:
  - make:              table skeleton (uniform or zero weights)
  - get_subtable:      restrict to an evidence assignment
  - multiply:          join-product on the union of variables
  - marginalize:       sum or max out variables (policy from Mode)
  - make_distribution: normalize per conditioning assignment

Design constraints:
  - Tables are immutable; every operation returns a new table.
  - Axis i of data corresponds to variables[i]; values along the axis
    follow domains[i]. Rows are enumerated in C order, so row order is
    the itertools.product of the domains in variable order.
  - multiply() orders the result as left variables, then right-only
    variables. This keeps row order deterministic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from pgmkit.algebra.semiring import Mode, semiring_for
from pgmkit.errors import (
    DegenerateTable,
    IncompatibleDomains,
    InvalidDomain,
    NoMatchingRows,
    VariableNotFound,
)

logger = logging.getLogger(__name__)

Domain = Tuple[Any, ...]
Assignment = Tuple[Any, ...]


def _is_bool(x: Any) -> bool:
    return isinstance(x, (bool, np.bool_))


def domain_index(domain: Sequence[Any], value: Any) -> Optional[int]:
    """
    Position of value in domain, or None when absent.

    Booleans only match booleans, so True is not found in (0, 1, 2).
    Other values compare with ==, so 1 and 1.0 are the same value.
    """
    for i, d in enumerate(domain):
        if _is_bool(d) == _is_bool(value) and d == value:
            return i
    return None


def _same_values(d1: Domain, d2: Domain) -> bool:
    return len(d1) == len(d2) and all(domain_index(d2, x) is not None for x in d1)


def _check_domain(var: str, domain: Domain) -> None:
    if len(domain) == 0:
        raise InvalidDomain(f"Variable {var!r} has an empty domain")
    seen = []
    for d in domain:
        if domain_index(seen, d) is not None:
            raise InvalidDomain(f"Variable {var!r} lists value {d!r} twice")
        seen.append(d)


@dataclass(frozen=True, eq=False)
class FactorTable:
    """
    A factor over an ordered tuple of discrete variables.

    Attributes:
        variables: Ordered variable names (axis labels).
        domains: Admissible values of each variable, in axis order.
        data: Read-only float array shaped by the domain sizes.
        conditioning: Variables the table is conditioned on. Empty for
            joint distributions and plain potentials.
    """
    variables: Tuple[str, ...]
    domains: Tuple[Domain, ...]
    data: np.ndarray
    conditioning: Tuple[str, ...] = ()

    def __post_init__(self):
        variables = tuple(self.variables)
        domains = tuple(tuple(d) for d in self.domains)
        if len(variables) != len(domains):
            raise ValueError(
                f"FactorTable rank mismatch: {len(variables)} variables "
                f"but {len(domains)} domains"
            )
        if len(set(variables)) != len(variables):
            raise ValueError(f"FactorTable variables have duplicates: {variables}")
        for v, d in zip(variables, domains):
            _check_domain(v, d)

        shape = tuple(len(d) for d in domains)
        data = np.array(self.data, dtype=np.float64)
        if data.shape != shape:
            if data.size != int(np.prod(shape)):
                raise ValueError(f"FactorTable data shape {data.shape} != domain shape {shape}")
            data = data.reshape(shape)
        if np.any(np.isnan(data)) or np.any(data < 0):
            raise ValueError("FactorTable weights must be non-negative numbers")
        data.setflags(write=False)

        conditioning = tuple(self.conditioning)
        for v in conditioning:
            if v not in variables:
                raise VariableNotFound(f"Conditioning variable {v!r} not in {variables}")

        object.__setattr__(self, "variables", variables)
        object.__setattr__(self, "domains", domains)
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "conditioning", conditioning)

    # ------------------------------------------------------------------
    # Construction

    @staticmethod
    def make(
        variables: Sequence[str],
        domains: Sequence[Sequence[Any]],
        fill: str = "uniform",
        conditioning: Sequence[str] = (),
    ) -> "FactorTable":
        """
        Build a table skeleton with one row per joint assignment.

        Args:
            variables: Variable names
            domains: Domain of each variable
            fill: "uniform" gives every conditional distribution equal
                weight; "zero" prepares the table for counting
            conditioning: Variables the table is conditioned on

        Returns:
            The new FactorTable
        """
        variables = tuple(variables)
        domains = tuple(tuple(d) for d in domains)
        for v, d in zip(variables, domains):
            _check_domain(v, d)
        shape = tuple(len(d) for d in domains)

        if fill == "zero":
            data = np.zeros(shape)
        elif fill == "uniform":
            free = [len(d) for v, d in zip(variables, domains) if v not in conditioning]
            data = np.full(shape, 1.0 / float(np.prod(free)))
        else:
            raise ValueError(f"Unknown fill {fill!r}; expected 'uniform' or 'zero'")

        logger.debug("make factor over %s with shape %s (%s)", variables, shape, fill)
        return FactorTable(variables, domains, data, tuple(conditioning))

    @staticmethod
    def unit(variables: Sequence[str], domains: Sequence[Sequence[Any]]) -> "FactorTable":
        """Constant-one table."""
        domains = tuple(tuple(d) for d in domains)
        return FactorTable(tuple(variables), domains, np.ones(tuple(len(d) for d in domains)))

    @staticmethod
    def indicator(variable: str, domain: Sequence[Any], value: Any) -> "FactorTable":
        """Evidence factor: one on the observed value, zero elsewhere."""
        domain = tuple(domain)
        j = domain_index(domain, value)
        if j is None:
            raise NoMatchingRows(f"Value {value!r} is outside the domain of {variable!r}: {domain}")
        data = np.zeros(len(domain))
        data[j] = 1.0
        return FactorTable((variable,), (domain,), data)

    def with_data(self, data: Any) -> "FactorTable":
        """Same scope, new weights."""
        return FactorTable(self.variables, self.domains, data, self.conditioning)

    # ------------------------------------------------------------------
    # Introspection

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.data.shape

    @property
    def scope(self) -> Tuple[str, ...]:
        return self.variables

    def axis_of(self, v: str) -> int:
        """Axis index of variable v."""
        try:
            return self.variables.index(v)
        except ValueError:
            raise VariableNotFound(f"Variable {v!r} not in table over {self.variables}") from None

    def domain_of(self, v: str) -> Domain:
        return self.domains[self.axis_of(v)]

    def rows(self) -> Iterator[Tuple[Assignment, float]]:
        """Yield (assignment, weight) pairs in row order."""
        for idx in np.ndindex(*self.shape):
            assignment = tuple(self.domains[i][k] for i, k in enumerate(idx))
            yield assignment, float(self.data[idx])

    def to_dict(self) -> Dict[Assignment, float]:
        return dict(self.rows())

    def value(self, assignment: Union[Mapping[str, Any], Sequence[Any]]) -> float:
        """Weight of a full assignment, given as a mapping or in axis order."""
        if isinstance(assignment, Mapping):
            missing = [v for v in self.variables if v not in assignment]
            if missing:
                raise VariableNotFound(f"Assignment lacks variables {missing}")
            values = [assignment[v] for v in self.variables]
        else:
            values = list(assignment)
            if len(values) != len(self.variables):
                raise ValueError(f"Expected {len(self.variables)} values, got {len(values)}")
        idx = []
        for v, d, x in zip(self.variables, self.domains, values):
            j = domain_index(d, x)
            if j is None:
                raise NoMatchingRows(f"Value {x!r} is outside the domain of {v!r}: {d}")
            idx.append(j)
        return float(self.data[tuple(idx)])

    def total(self) -> float:
        return float(np.sum(self.data))

    def argmax(self) -> Dict[str, Any]:
        """Highest-weight assignment; the first row wins ties."""
        idx = np.unravel_index(int(np.argmax(self.data)), self.shape)
        return {v: self.domains[i][k] for i, (v, k) in enumerate(zip(self.variables, idx))}

    # ------------------------------------------------------------------
    # Algebra

    def get_subtable(self, assignment: Mapping[str, Any]) -> "FactorTable":
        """
        Keep only the rows consistent with a partial assignment.

        Restricted variables keep their axis with a one-value domain, so
        the result still mentions them. Entries for variables that are not
        in the table are ignored.
        """
        domains = list(self.domains)
        index = [slice(None)] * len(self.variables)
        for v, value in assignment.items():
            if v not in self.variables:
                continue
            i = self.variables.index(v)
            j = domain_index(domains[i], value)
            if j is None:
                raise NoMatchingRows(
                    f"No rows with {v}={value!r}; domain is {domains[i]}"
                )
            index[i] = slice(j, j + 1)
            domains[i] = (domains[i][j],)
        return FactorTable(self.variables, tuple(domains), self.data[tuple(index)], self.conditioning)

    def _aligned_view(self, target: Tuple[str, ...], target_shape: Tuple[int, ...]) -> np.ndarray:
        """
        Broadcast data to target ordering.

        Existing axes are permuted into target order, missing variables
        become singleton axes, and the result is broadcast to target_shape.
        """
        src_pos = {v: i for i, v in enumerate(self.variables)}
        perm = [src_pos[v] for v in target if v in src_pos]

        data = self.data
        if perm and perm != list(range(data.ndim)):
            data = np.transpose(data, axes=perm)

        shape = []
        j = 0
        for v in target:
            if v in src_pos:
                shape.append(data.shape[j])
                j += 1
            else:
                shape.append(1)
        return np.broadcast_to(data.reshape(shape), target_shape)

    def _reordered(self, v: str, domain: Domain) -> "FactorTable":
        """Same table with variable v's values laid out in the given order."""
        i = self.axis_of(v)
        perm = [domain_index(self.domains[i], x) for x in domain]
        domains = self.domains[:i] + (tuple(domain),) + self.domains[i + 1:]
        return FactorTable(self.variables, domains, np.take(self.data, perm, axis=i), self.conditioning)

    def multiply(self, other: "FactorTable") -> "FactorTable":
        """
        Join-product on the union of both scopes.

        (f * g)(x_{U∪W}) = f(x_U) g(x_W)

        A shared variable may list its values in a different order in
        each table; the result follows the left table's order.
        """
        for v in other.variables:
            if v not in self.variables:
                continue
            mine, theirs = self.domain_of(v), other.domain_of(v)
            if not _same_values(mine, theirs):
                raise IncompatibleDomains(
                    f"Variable {v!r} has domain {mine} in one table and {theirs} in the other"
                )
            if any(domain_index(theirs, x) != i for i, x in enumerate(mine)):
                other = other._reordered(v, mine)

        union = self.variables + tuple(v for v in other.variables if v not in self.variables)
        domains = tuple(
            self.domain_of(v) if v in self.variables else other.domain_of(v) for v in union
        )
        target_shape = tuple(len(d) for d in domains)

        a = self._aligned_view(union, target_shape)
        b = other._aligned_view(union, target_shape)

        free = (set(self.variables) - set(self.conditioning)) | (set(other.variables) - set(other.conditioning))
        conditioned = set(self.conditioning) | set(other.conditioning)
        conditioning = tuple(v for v in union if v in conditioned and v not in free)
        return FactorTable(union, domains, np.multiply(a, b), conditioning)

    __mul__ = multiply

    def project(self, target: Sequence[str], mode: Union[Mode, str] = Mode.SUM_PRODUCT) -> "FactorTable":
        """
        Marginalize onto exactly the variables in target, in that order.

        The eliminated variables are aggregated with the mode's policy:
        summation for SUM_PRODUCT, maximum for MAX_PRODUCT.
        """
        target = tuple(target)
        if len(set(target)) != len(target):
            raise ValueError(f"project target has duplicates: {target}")
        kept_axes = [self.axis_of(v) for v in target]
        elim_axes = [i for i, v in enumerate(self.variables) if v not in target]

        if not elim_axes and kept_axes == list(range(len(self.variables))):
            return self

        data = np.transpose(self.data, axes=kept_axes + elim_axes)
        if elim_axes:
            sr = semiring_for(mode)
            data = sr.add_reduce(data, tuple(range(len(kept_axes), self.data.ndim)))

        domains = tuple(self.domains[i] for i in kept_axes)
        conditioning = tuple(v for v in self.conditioning if v in target)
        if all(v in conditioning for v in target):
            conditioning = ()
        return FactorTable(target, domains, data, conditioning)

    def marginalize(self, variables: Sequence[str], mode: Union[Mode, str] = Mode.SUM_PRODUCT) -> "FactorTable":
        """Sum (or max) out the given variables."""
        if isinstance(variables, str):
            variables = (variables,)
        for v in variables:
            self.axis_of(v)
        return self.project(tuple(v for v in self.variables if v not in variables), mode)

    def make_distribution(self, conditioning: Optional[Sequence[str]] = None) -> "FactorTable":
        """
        Normalize over the free variables for each conditioning assignment.

        With no conditioning variables the whole table sums to one.
        Idempotent up to floating point.

        Args:
            conditioning: Override of self.conditioning

        Returns:
            A new, normalized FactorTable
        """
        cond = self.conditioning if conditioning is None else tuple(conditioning)
        for v in cond:
            self.axis_of(v)
        free_axes = tuple(i for i, v in enumerate(self.variables) if v not in cond)
        if not free_axes:
            raise DegenerateTable(f"Table over {self.variables} has no free variable to normalize")

        total = np.sum(self.data, axis=free_axes, keepdims=True)
        if np.any(total == 0):
            raise DegenerateTable(
                f"Table over {self.variables} has a zero normalizer "
                f"(conditioning on {cond})"
            )
        return FactorTable(self.variables, self.domains, self.data / total, cond)

    def __repr__(self) -> str:
        cond = f" | {', '.join(self.conditioning)}" if self.conditioning else ""
        return f"FactorTable({', '.join(self.variables)}{cond}; shape={self.shape})"
