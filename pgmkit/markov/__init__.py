"""
pgmkit/markov

Hidden Markov models.
"""

from pgmkit.markov.hmm import Markov

__all__ = ["Markov"]
