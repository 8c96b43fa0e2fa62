"""
pgmkit/errors.py

Exception hierarchy.

Every error derives from PGMError, itself a ValueError, so callers that
only guard against ValueError keep working.
"""


class PGMError(ValueError):
    """Base class for all pgmkit errors."""


class ConfigurationError(PGMError):
    """Unknown option, bad option value, or an object used in the wrong state."""


class InvalidDomain(PGMError):
    """A variable domain is empty or lists the same value twice."""


class CyclicDependency(PGMError):
    """A node reaches itself through its parents, or a graph has a loop."""


class DuplicateParent(PGMError):
    """The same parent appears more than once."""


class NoMatchingRows(PGMError):
    """An assignment names a value outside the variable's domain."""


class IncompatibleDomains(PGMError):
    """Two tables disagree on the domain of a shared variable."""


class DegenerateTable(PGMError):
    """A normalizing denominator is zero."""


class EmptyMessageSet(PGMError):
    """Nothing to combine: no incoming messages and no own factor."""


class UnorderedDomain(PGMError):
    """The domain has no numeric ordering to quantize against."""


class InsufficientData(PGMError):
    """Some parent assignment was never observed in the data."""


class VariableNotFound(PGMError, LookupError):
    """A variable is not part of the graph, table, or data."""


class IncompleteEliminationOrder(PGMError):
    """The elimination order does not cover exactly the hidden variables."""


class ShapeMismatch(PGMError):
    """A parameter or observation array has the wrong shape."""
