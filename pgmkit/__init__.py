"""
pgmkit: exact inference for discrete probabilistic graphical models

Key components:
- algebra: FactorTable and sum-/max-product aggregation policies
- graph: Node, Message and Graph (variable elimination, belief propagation)
- markov: Gaussian-emission hidden Markov model with Viterbi decoding
- config: validated option records
- data: read access to observation tables
- errors: exception hierarchy
"""

__version__ = "1.0.0"
__author__ = "pgmkit Team"

from pgmkit.algebra.factor import FactorTable
from pgmkit.algebra.semiring import Mode
from pgmkit.config import MarkovConfig, NodeConfig, NodeKind
from pgmkit.data import observations_table
from pgmkit.errors import (
    PGMError,
    ConfigurationError,
    InvalidDomain,
    CyclicDependency,
    DuplicateParent,
    NoMatchingRows,
    IncompatibleDomains,
    DegenerateTable,
    EmptyMessageSet,
    UnorderedDomain,
    InsufficientData,
    VariableNotFound,
    IncompleteEliminationOrder,
    ShapeMismatch,
)
from pgmkit.graph.node import Node
from pgmkit.graph.message import Message, MessageKind, create_message
from pgmkit.graph.graph import Graph
from pgmkit.markov.hmm import Markov
from pgmkit.logging_utils import setup_logger

__all__ = [
    # Algebra
    "FactorTable",
    "Mode",
    # Configuration
    "MarkovConfig",
    "NodeConfig",
    "NodeKind",
    # Data
    "observations_table",
    # Graphs
    "Node",
    "Message",
    "MessageKind",
    "create_message",
    "Graph",
    # HMM
    "Markov",
    # Logging
    "setup_logger",
    # Errors
    "PGMError",
    "ConfigurationError",
    "InvalidDomain",
    "CyclicDependency",
    "DuplicateParent",
    "NoMatchingRows",
    "IncompatibleDomains",
    "DegenerateTable",
    "EmptyMessageSet",
    "UnorderedDomain",
    "InsufficientData",
    "VariableNotFound",
    "IncompleteEliminationOrder",
    "ShapeMismatch",
]
