"""
pgmkit/graph/message.py

Messages exchanged during belief propagation.

A message from node u to a neighbour v summarizes everything u knows
that does not come from v: u's own factor, u's evidence, and the
messages u received from its other neighbours. It is expressed over the
separator scope(u) ∩ scope(v), which for a parent/child edge is the single
shared variable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import Mapping, Optional, Tuple, Union

from pgmkit.algebra.factor import FactorTable
from pgmkit.algebra.semiring import Mode
from pgmkit.config import NodeKind
from pgmkit.errors import ConfigurationError
from pgmkit.graph.node import Node


class MessageKind(Enum):
    """Direction type of a message."""
    VARIABLE_TO_VARIABLE = 1
    VARIABLE_TO_FACTOR = 2
    FACTOR_TO_VARIABLE = 3

    @classmethod
    def between(cls, source: Node, destination: Node) -> "MessageKind":
        if source.kind is NodeKind.FACTOR:
            return cls.FACTOR_TO_VARIABLE
        if destination.kind is NodeKind.FACTOR:
            return cls.VARIABLE_TO_FACTOR
        return cls.VARIABLE_TO_VARIABLE


@dataclass(frozen=True)
class Message:
    """
    Attributes:
        source: Sending node name
        destination: Receiving node name
        kind: Direction type
        table: Normalized table over the separator
    """
    source: str
    destination: str
    kind: MessageKind
    table: FactorTable

    @property
    def separator(self) -> Tuple[str, ...]:
        return self.table.variables


def separator(source: Node, destination: Node) -> Tuple[str, ...]:
    """Variables shared by the local factors of two nodes, in source order."""
    dest_scope = set(destination.scope)
    return tuple(v for v in source.scope if v in dest_scope)


def _domain(var: str, source: Node, destination: Node) -> Tuple:
    for n in (source, destination) + source.parents + destination.parents:
        if n.name == var:
            return n.domain
    raise ConfigurationError(f"No node named {var!r} next to {source.name!r}")


def create_message(
    source: Node,
    destination: Node,
    inbox: Mapping[str, Message],
    mode: Union[Mode, str] = Mode.SUM_PRODUCT,
    exclude: Optional[str] = None,
) -> Message:
    """
    Build the message sent from source to destination.

    Args:
        source: Sending node
        destination: Receiving node
        inbox: Messages already received by source, keyed by sender name
        mode: Aggregation policy used to marginalize onto the separator
        exclude: Sender whose message is left out (default: destination)

    Returns:
        The new Message
    """
    sep = separator(source, destination)
    if not sep:
        raise ConfigurationError(
            f"Nodes {source.name!r} and {destination.name!r} share no variable"
        )
    if exclude is None:
        exclude = destination.name

    tables = source.local_tables()
    tables += [m.table for sender, m in inbox.items() if sender != exclude]

    if tables:
        product = reduce(lambda a, b: a.multiply(b), tables)
        missing = [v for v in sep if v not in product.variables]
        if missing:
            product = product.multiply(
                FactorTable.unit(missing, [_domain(v, source, destination) for v in missing])
            )
        table = product.project(sep, mode)
    else:
        table = FactorTable.unit(sep, [_domain(v, source, destination) for v in sep])

    return Message(
        source=source.name,
        destination=destination.name,
        kind=MessageKind.between(source, destination),
        table=table.make_distribution(conditioning=()),
    )
