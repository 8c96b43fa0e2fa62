"""
pgmkit/graph/schedule.py

Message schedules on trees.

Belief propagation on a tree needs one pass towards the root (each node
sends to its parent once all its children have reported) and one pass
away from it. Both passes are driven by explicit worklists so that depth
is not limited by the interpreter's recursion limit.
"""

from __future__ import annotations

from typing import Dict, Hashable, List, Optional, Tuple

import networkx as nx

from pgmkit.errors import CyclicDependency


def check_forest(g: nx.Graph) -> None:
    """Raise CyclicDependency if the undirected graph has a loop."""
    if g.number_of_nodes() and not nx.is_forest(g):
        cycle = nx.find_cycle(g)
        path = " - ".join(str(u) for u, _ in cycle)
        raise CyclicDependency(f"Message passing needs a tree, found loop: {path}")


def root_tree(tree: nx.Graph, root: Hashable) -> Tuple[Dict[Hashable, Optional[Hashable]], Dict[Hashable, List[Hashable]]]:
    """
    Root a tree at a given node.

    Args:
        tree: Undirected tree graph
        root: Root node

    Returns:
        (parent, children) where:
        - parent[node] = parent node (None for root)
        - children[node] = list of child nodes
    """
    parent: Dict[Hashable, Optional[Hashable]] = {root: None}
    children: Dict[Hashable, List[Hashable]] = {root: []}

    stack = [root]
    while stack:
        u = stack.pop()
        for v in tree.neighbors(u):
            if v in parent:
                continue
            parent[v] = u
            children.setdefault(u, []).append(v)
            children.setdefault(v, [])
            stack.append(v)

    return parent, children


def preorder(children: Dict[Hashable, List[Hashable]], root: Hashable) -> List[Hashable]:
    """Nodes with every parent before its children."""
    order = []
    stack = [root]
    while stack:
        u = stack.pop()
        order.append(u)
        stack.extend(reversed(children.get(u, [])))
    return order


def postorder(children: Dict[Hashable, List[Hashable]], root: Hashable) -> List[Hashable]:
    """Nodes with every child before its parent."""
    return list(reversed(preorder(children, root)))
