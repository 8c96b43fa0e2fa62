"""
pgmkit/graph

Nodes, messages and exact inference over graphs of nodes.
"""

from pgmkit.graph.node import Node
from pgmkit.graph.message import Message, MessageKind, create_message, separator
from pgmkit.graph.graph import Graph
from pgmkit.graph.schedule import check_forest, postorder, preorder, root_tree

__all__ = [
    "Node",
    "Message",
    "MessageKind",
    "create_message",
    "separator",
    "Graph",
    "check_forest",
    "postorder",
    "preorder",
    "root_tree",
]
