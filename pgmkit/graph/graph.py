"""
pgmkit/graph/graph.py

Graph: an ordered collection of defined nodes with exact inference.

Two engines are provided:
- eliminate/query: variable elimination over all factor tables, with
  evidence applied by table restriction
- solve/decode: two-pass belief propagation over the undirected skeleton,
  which must be a forest (poly-tree networks)

Query variables, evidence and elimination orders are passed per call and
never stored on the graph.
"""

from __future__ import annotations

import logging
from functools import reduce
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import networkx as nx

from pgmkit.algebra.factor import FactorTable
from pgmkit.algebra.semiring import Mode
from pgmkit.data import materialize
from pgmkit.errors import (
    ConfigurationError,
    IncompleteEliminationOrder,
    VariableNotFound,
)
from pgmkit.graph.message import Message, create_message
from pgmkit.graph.node import Node
from pgmkit.graph.schedule import check_forest, postorder, preorder, root_tree

logger = logging.getLogger(__name__)

VarRef = Union[str, Node]


class Graph:
    """
    Arena of nodes keyed by name, in insertion order.

    Example:
        >>> rain = Node("rain", type="factor").define()
        >>> wet = Node("wet", type="factor", parents=[rain]).define()
        >>> g = Graph(rain, wet)
        >>> g.query(["rain"], ["wet"], [True])
    """

    def __init__(self, *nodes: Union[Node, Iterable[Node]]):
        if len(nodes) == 1 and not isinstance(nodes[0], Node):
            nodes = tuple(nodes[0])
        self._nodes: Dict[str, Node] = {}
        for n in nodes:
            if not isinstance(n, Node):
                raise ConfigurationError(f"Graph members must be Nodes, got {n!r}")
            if not n.is_defined:
                raise ConfigurationError(f"Node {n.name!r} must be defined before joining a graph")
            if n.name in self._nodes:
                raise ConfigurationError(f"Duplicate node name {n.name!r}")
            self._nodes[n.name] = n
        for n in self._nodes.values():
            for p in n.parent_names:
                if p not in self._nodes:
                    raise VariableNotFound(f"Parent {p!r} of {n.name!r} is not in the graph")

    # ------------------------------------------------------------------
    # Container protocol

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, item: Any) -> bool:
        name = item.name if isinstance(item, Node) else item
        return name in self._nodes

    def __repr__(self) -> str:
        return f"Graph(nodes={list(self._nodes)})"

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._nodes)

    def node(self, ref: VarRef) -> Node:
        """Look up a node by name (or confirm membership of a Node)."""
        name = self._name(ref)
        return self._nodes[name]

    def _name(self, ref: VarRef) -> str:
        name = ref.name if isinstance(ref, Node) else ref
        if name not in self._nodes:
            raise VariableNotFound(f"Variable {name!r} is not in the graph")
        return name

    def structure(self) -> nx.DiGraph:
        """Parent -> child edges between node names."""
        g = nx.DiGraph()
        g.add_nodes_from(self._nodes)
        for n in self._nodes.values():
            for p in n.parent_names:
                g.add_edge(p, n.name)
        return g

    def factors(self) -> List[FactorTable]:
        """Every factor table in the graph, in node order."""
        return [n.table for n in self._nodes.values() if n.table is not None]

    def joint(self) -> FactorTable:
        """Product of all factor tables (unnormalized joint)."""
        tables = self.factors()
        if not tables:
            raise ConfigurationError("Graph has no factor tables")
        return reduce(lambda a, b: a.multiply(b), tables)

    # ------------------------------------------------------------------
    # Learning

    def set_conditionals(self, data: Any) -> None:
        """Estimate every factor node's table from a data table."""
        data = materialize(data)
        for n in self._nodes.values():
            if n.has_factor:
                n.set_conditionals(data)
        logger.debug("estimated conditionals for %d nodes", len(self.factors()))

    # ------------------------------------------------------------------
    # Variable elimination

    def _evidence(self, evidence_vars: Sequence[VarRef], evidence_values: Sequence[Any]) -> Dict[str, Any]:
        evidence_vars = list(evidence_vars)
        evidence_values = list(evidence_values)
        if len(evidence_vars) != len(evidence_values):
            raise ValueError(
                f"Got {len(evidence_vars)} evidence variables but {len(evidence_values)} values"
            )
        return {self._name(v): x for v, x in zip(evidence_vars, evidence_values)}

    def query(
        self,
        query_vars: Sequence[VarRef],
        evidence_vars: Sequence[VarRef] = (),
        evidence_values: Sequence[Any] = (),
        mode: Union[Mode, str] = Mode.SUM_PRODUCT,
    ) -> FactorTable:
        """
        Posterior over query_vars given evidence.

        Eliminates every other variable in graph insertion order.
        """
        q = {self._name(v) for v in query_vars}
        e = set(self._evidence(evidence_vars, evidence_values))
        order = [name for name in self._nodes if name not in q and name not in e]
        return self.eliminate(query_vars, evidence_vars, evidence_values, order, mode=mode)

    def eliminate(
        self,
        query_vars: Sequence[VarRef],
        evidence_vars: Sequence[VarRef],
        evidence_values: Sequence[Any],
        elimination_order: Sequence[VarRef],
        mode: Union[Mode, str] = Mode.SUM_PRODUCT,
    ) -> FactorTable:
        """
        Variable elimination.

        1. collect every factor table
        2. restrict them to the evidence
        3. for each variable in elimination_order, multiply the factors
           mentioning it and marginalize it out
        4. multiply the remaining factors
        5. project onto the query variables and normalize

        The order is used as given; its quality only affects cost.

        Args:
            query_vars: Variables of the answer, in answer axis order
            evidence_vars: Observed variables
            evidence_values: Observed values, parallel to evidence_vars
            elimination_order: Every variable that is neither query nor evidence
            mode: SUM_PRODUCT for posteriors, MAX_PRODUCT for max-marginals

        Returns:
            Normalized FactorTable over query_vars
        """
        query = tuple(self._name(v) for v in query_vars)
        if not query:
            raise ValueError("At least one query variable is required")
        if len(set(query)) != len(query):
            raise ValueError(f"Query variables have duplicates: {query}")
        evidence = self._evidence(evidence_vars, evidence_values)
        overlap = [v for v in query if v in evidence]
        if overlap:
            raise ValueError(f"Variables {overlap} are both queried and observed")

        order = [self._name(v) for v in elimination_order]
        hidden = [name for name in self._nodes if name not in query and name not in evidence]
        if len(set(order)) != len(order):
            raise IncompleteEliminationOrder(f"Elimination order repeats variables: {order}")
        extra = [v for v in order if v not in hidden]
        if extra:
            raise IncompleteEliminationOrder(f"Elimination order includes query/evidence variables {extra}")
        missing = [v for v in hidden if v not in order]
        if missing:
            raise IncompleteEliminationOrder(f"Elimination order omits {missing}")

        factors = [t.get_subtable(evidence) for t in self.factors()]
        for var in order:
            related = [f for f in factors if var in f.variables]
            if not related:
                continue
            factors = [f for f in factors if var not in f.variables]
            product = reduce(lambda a, b: a.multiply(b), related)
            factors.append(product.marginalize((var,), mode))
            logger.debug("eliminated %s from %d factors", var, len(related))

        result = reduce(lambda a, b: a.multiply(b), factors) if factors else None
        for v in query:
            if result is None or v not in result.variables:
                prior = FactorTable.unit((v,), (self._nodes[v].domain,))
                result = prior if result is None else result.multiply(prior)

        return result.project(query, mode).make_distribution(conditioning=())

    # ------------------------------------------------------------------
    # Belief propagation

    def solve(self, mode: Union[Mode, str] = Mode.SUM_PRODUCT, root: Optional[VarRef] = None) -> Dict[str, FactorTable]:
        """
        Two-pass belief propagation.

        Each connected component is rooted (at root if it belongs to it,
        otherwise at its first node in insertion order). Messages flow
        leaves -> root, then root -> leaves, one per directed edge. Every
        node is then evaluated against all of its incoming messages.
        Evidence comes from each node's observe()/quantize() value.

        Raises:
            CyclicDependency: the undirected skeleton has a loop

        Returns:
            Mapping from node name to belief
        """
        mode = Mode.coerce(mode)
        skeleton = self.structure().to_undirected()
        check_forest(skeleton)
        root_name = self._name(root) if root is not None else None

        inbox: Dict[str, Dict[str, Message]] = {name: {} for name in self._nodes}
        sent = 0
        visited = set()
        for name in self._nodes:
            if name in visited:
                continue
            component = nx.node_connected_component(skeleton, name)
            r = root_name if root_name in component else name
            _, children = root_tree(skeleton, r)
            visited.update(component)

            for u in postorder(children, r):
                for c in children[u]:
                    inbox[u][c] = create_message(self._nodes[c], self._nodes[u], inbox[c], mode)
                    sent += 1
            for u in preorder(children, r):
                for c in children[u]:
                    inbox[c][u] = create_message(self._nodes[u], self._nodes[c], inbox[u], mode)
                    sent += 1

        beliefs: Dict[str, FactorTable] = {}
        for name, node in self._nodes.items():
            messages = list(inbox[name].values())
            if not messages and not node.has_factor:
                # Isolated variable node
                if node.observed is None:
                    node.reset()
                    beliefs[name] = node.query()
                else:
                    beliefs[name] = node.evidence()
                continue
            beliefs[name] = node.evaluate(messages, mode)

        logger.debug("solve (%s): %d messages over %d nodes", mode.name, sent, len(self._nodes))
        return beliefs

    def decode(self) -> Dict[str, Any]:
        """
        Most probable value of every node under max-product.

        Ties go to the value listed first in the node's domain.
        """
        beliefs = self.solve(mode=Mode.MAX_PRODUCT)
        return {name: b.argmax()[name] for name, b in beliefs.items()}
