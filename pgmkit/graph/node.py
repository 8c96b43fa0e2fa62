"""
pgmkit/graph/node.py

A Node is a discrete random variable in a graph.

Every node owns an ordered domain. A FACTOR node additionally owns a
conditional probability table P(node | parents); a VARIABLE node owns no
table and cannot have parents.

Lifecycle:
    Node(name, **options)   options checked against NodeConfig
    define(**options)       structure locked, table skeleton allocated
    set_conditionals(data)  or set_table(values)
    observe(value)          or quantize(raw)
    evaluate(messages) / query()

Parents are held through weak references. The Graph that aggregates the
nodes owns them.
"""

from __future__ import annotations

import logging
import numbers
import weakref
from dataclasses import replace
from functools import reduce
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from pgmkit.algebra.factor import FactorTable, domain_index
from pgmkit.algebra.semiring import Mode
from pgmkit.config import NodeConfig, NodeKind
from pgmkit.data import column, materialize, num_rows
from pgmkit.errors import (
    ConfigurationError,
    CyclicDependency,
    DuplicateParent,
    EmptyMessageSet,
    InsufficientData,
    NoMatchingRows,
    UnorderedDomain,
)

logger = logging.getLogger(__name__)


class Node:
    """
    A variable or factor vertex.

    Attributes:
        name: Identifier, also the variable name used in tables
        config: Validated structural options
        observed: Observed value, or None
    """

    def __init__(self, name: str, **options: Any):
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Node name must be a non-empty string, got {name!r}")
        self.name = name
        self.config = NodeConfig.from_options(**options)
        self.observed: Optional[Any] = None
        self._defined = False
        self._parents: Tuple[weakref.ref, ...] = ()
        self._table: Optional[FactorTable] = None
        self._belief: Optional[FactorTable] = None

    # ------------------------------------------------------------------
    # Structure

    def define(self, **options: Any) -> "Node":
        """
        Lock the node's structure.

        Options given here override those given at construction. Parents
        do not have to be defined first; their configured domains are used
        to size the table.

        Raises:
            InvalidDomain: empty or repeated domain values
            DuplicateParent: a parent listed twice
            CyclicDependency: the node is reachable through its parents
            ConfigurationError: already defined, or a variable node with parents
        """
        if self._defined:
            raise ConfigurationError(f"Node {self.name!r} is already defined")
        config = self.config.merge(**options)

        # Validates the domain (raises InvalidDomain)
        FactorTable.unit((self.name,), (config.values,))

        parents = config.parents
        for p in parents:
            if not isinstance(p, Node):
                raise ConfigurationError(f"Parent of {self.name!r} is not a Node: {p!r}")
        names = [p.name for p in parents]
        for p in parents:
            if names.count(p.name) > 1:
                raise DuplicateParent(f"Node {self.name!r} lists parent {p.name!r} twice")
        if parents and config.kind is NodeKind.VARIABLE:
            raise ConfigurationError(
                f"Variable node {self.name!r} cannot have parents; use type='factor'"
            )
        self._check_acyclic(parents)

        # Parents are kept only through weak references once defined
        self.config = replace(config, parents=())
        self._parents = tuple(weakref.ref(p) for p in parents)
        if config.kind is NodeKind.FACTOR:
            names = (self.name,) + tuple(p.name for p in parents)
            domains = (config.values,) + tuple(p.config.values for p in parents)
            self._table = FactorTable.make(names, domains, conditioning=names[1:])
        self._defined = True
        logger.debug("defined %s node %r with parents %s", config.kind.value, self.name, self.parent_names)
        return self

    def _check_acyclic(self, parents: Sequence["Node"]) -> None:
        stack = list(parents)
        visited = set()
        while stack:
            n = stack.pop()
            if n is self or n.name == self.name:
                raise CyclicDependency(f"Node {self.name!r} appears in its own parent chain")
            if id(n) in visited:
                continue
            visited.add(id(n))
            stack.extend(n._declared_parents())

    def _declared_parents(self) -> Tuple["Node", ...]:
        return self.parents if self._defined else self.config.parents

    @property
    def is_defined(self) -> bool:
        return self._defined

    @property
    def kind(self) -> NodeKind:
        return self.config.kind

    @property
    def domain(self) -> Tuple[Any, ...]:
        return self.config.values

    @property
    def has_factor(self) -> bool:
        return self._table is not None

    @property
    def parents(self) -> Tuple["Node", ...]:
        out = []
        for ref in self._parents:
            p = ref()
            if p is None:
                raise ReferenceError(f"A parent of node {self.name!r} no longer exists")
            out.append(p)
        return tuple(out)

    @property
    def parent_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parents)

    @property
    def scope(self) -> Tuple[str, ...]:
        """Variables touched by this node's local factor."""
        return (self.name,) + self.parent_names

    def _require_defined(self) -> None:
        if not self._defined:
            raise ConfigurationError(f"Node {self.name!r} must be defined first")

    # ------------------------------------------------------------------
    # Tables

    @property
    def table(self) -> Optional[FactorTable]:
        return self._table

    def set_table(self, values: Union[FactorTable, np.ndarray, Sequence]) -> FactorTable:
        """
        Overwrite the conditional table.

        Args:
            values: A FactorTable with this node's scope, or weights laid out
                with axis 0 = this node and axes 1.. = parents in order

        Returns:
            The installed table
        """
        self._require_defined()
        if self._table is None:
            raise ConfigurationError(f"Variable node {self.name!r} has no table to set")
        if isinstance(values, FactorTable):
            if values.variables != self._table.variables or values.domains != self._table.domains:
                raise ValueError(
                    f"Table over {values.variables} does not match node scope {self._table.variables}"
                )
            table = FactorTable(values.variables, values.domains, values.data, self._table.conditioning)
        else:
            table = self._table.with_data(values)
        self._table = table
        self._belief = None
        return table

    def set_conditionals(self, data: Any) -> FactorTable:
        """
        Estimate P(node | parents) by counting rows of a data table.

        No smoothing is applied: every parent assignment must occur at
        least once.

        Raises:
            VariableNotFound: a needed column is missing
            NoMatchingRows: a value lies outside its domain
            InsufficientData: a parent assignment was never observed
        """
        self._require_defined()
        if self._table is None:
            raise ConfigurationError(f"Variable node {self.name!r} has no table to estimate")
        data = materialize(data)

        skeleton = FactorTable.make(
            self._table.variables, self._table.domains, fill="zero", conditioning=self._table.conditioning
        )
        columns = [column(data, v) for v in skeleton.variables]
        n = num_rows(data)
        if any(len(c) != n for c in columns):
            raise ValueError("Data columns have different lengths")

        counts = np.zeros(skeleton.shape)
        for r in range(n):
            idx = []
            for v, d, col in zip(skeleton.variables, skeleton.domains, columns):
                j = domain_index(d, col[r])
                if j is None:
                    raise NoMatchingRows(f"Row {r}: value {col[r]!r} is outside the domain of {v!r}")
                idx.append(j)
            counts[tuple(idx)] += 1

        per_parent = counts.sum(axis=0)
        if np.any(per_parent == 0):
            unseen = [
                tuple(d[k] for d, k in zip(skeleton.domains[1:], idx))
                for idx in np.argwhere(per_parent == 0)
            ]
            raise InsufficientData(
                f"Node {self.name!r}: no observations for parent assignment(s) {unseen}"
            )

        self._table = skeleton.with_data(counts).make_distribution()
        self._belief = None
        logger.debug("estimated P(%s | %s) from %d rows", self.name, ", ".join(self.parent_names), n)
        return self._table

    # ------------------------------------------------------------------
    # Evidence

    def observe(self, value: Any) -> Any:
        """Record an observed value from the domain."""
        self._require_defined()
        j = domain_index(self.domain, value)
        if j is None:
            raise NoMatchingRows(f"Value {value!r} is outside the domain of {self.name!r}: {self.domain}")
        self.observed = self.domain[j]
        return self.observed

    def clear_observation(self) -> None:
        self.observed = None

    def quantize(self, value: float) -> Any:
        """
        Observe the domain value nearest to a raw numeric input.

        Ties go to the value listed first in the domain.

        Raises:
            UnorderedDomain: the domain is not made of numbers
        """
        self._require_defined()
        if not all(isinstance(d, numbers.Real) and not isinstance(d, (bool, np.bool_)) for d in self.domain):
            raise UnorderedDomain(f"Domain of {self.name!r} is not numeric: {self.domain}")
        distance = [abs(float(d) - float(value)) for d in self.domain]
        self.observed = self.domain[int(np.argmin(distance))]
        return self.observed

    def evidence(self) -> Optional[FactorTable]:
        """Indicator table for the observed value, if any."""
        if self.observed is None:
            return None
        return FactorTable.indicator(self.name, self.domain, self.observed)

    def local_tables(self) -> List[FactorTable]:
        """Own factor and evidence indicator, whichever exist."""
        return [t for t in (self._table, self.evidence()) if t is not None]

    # ------------------------------------------------------------------
    # Inference

    def evaluate(self, messages: Sequence[Any], mode: Union[Mode, str] = Mode.SUM_PRODUCT) -> FactorTable:
        """
        Combine incoming messages into this node's belief.

        The own factor, the evidence indicator and every message table are
        multiplied, the product is marginalized onto this node using the
        mode's policy, and the result is normalized.

        Args:
            messages: Incoming Message objects (or bare FactorTables)
            mode: SUM_PRODUCT for marginals, MAX_PRODUCT for max-marginals

        Returns:
            The belief, a distribution over this node's domain
        """
        self._require_defined()
        tables = self.local_tables() + [getattr(m, "table", m) for m in messages]
        if not messages and self._table is None:
            raise EmptyMessageSet(f"Node {self.name!r} has no messages and no own factor")

        product = reduce(lambda a, b: a.multiply(b), tables)
        belief = product.project((self.name,), mode).make_distribution(conditioning=())
        self._belief = belief
        return belief

    @property
    def belief(self) -> Optional[FactorTable]:
        return self._belief

    def reset(self) -> None:
        """Forget the last belief."""
        self._belief = None

    def query(self) -> FactorTable:
        """Last belief, else the raw table, else a uniform prior."""
        self._require_defined()
        if self._belief is not None:
            return self._belief
        if self._table is not None:
            return self._table
        return FactorTable.make((self.name,), (self.domain,))

    def __repr__(self) -> str:
        state = "defined" if self._defined else "undefined"
        return f"Node({self.name!r}, {self.config.kind.value}, {state})"
