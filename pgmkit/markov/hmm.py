"""
pgmkit/markov/hmm.py

Hidden Markov model with multivariate Gaussian emissions.

Conceptually a chain-structured factor graph, implemented directly on
numpy arrays. Parameters are fixed by set() and only read by generate(),
infer(), viterbi() and log_likelihood().

States:
    Uninitialized -> Configured (after set())
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from scipy.special import logsumexp
from scipy.stats import multivariate_normal

from pgmkit.config import MarkovConfig
from pgmkit.errors import ConfigurationError, ShapeMismatch

logger = logging.getLogger(__name__)

_TOL = 1e-8


def _log(x: np.ndarray) -> np.ndarray:
    """Elementwise log with log(0) = -inf."""
    with np.errstate(divide="ignore"):
        return np.log(x)


def _check_distribution(name: str, p: np.ndarray) -> None:
    if np.any(p < 0) or not np.allclose(np.sum(p, axis=-1), 1.0, atol=1e-8):
        raise ConfigurationError(f"{name!r} must be non-negative and sum to one along its last axis")


def _check_covariance(k: int, cov: np.ndarray) -> None:
    if not np.allclose(cov, cov.T, atol=_TOL):
        raise ConfigurationError(f"sigma[:, :, {k}] is not symmetric")
    if np.min(np.linalg.eigvalsh(cov)) < -_TOL:
        raise ConfigurationError(f"sigma[:, :, {k}] is not positive semi-definite")


class Markov:
    """
    Gaussian-emission HMM.

    Example:
        >>> hmm = Markov().set(
        ...     init_prob=[1, 0],
        ...     tran_prob=[[0.9, 0.1], [0.1, 0.9]],
        ...     mu=[[1, -1], [-1, 1]],
        ... )
        >>> states, obs = hmm.generate(100, seed=0)
        >>> decoded = hmm.viterbi(obs)
    """

    def __init__(self, **options: Any):
        self.config: Optional[MarkovConfig] = None
        if options:
            self.set(**options)

    def set(self, **options: Any) -> "Markov":
        """
        Configure the model.

        Recognized options: num_states, num_observed, state_names,
        observed_names, init_prob, tran_prob, mu, sigma. Counts are
        inferred from the arrays when omitted; sigma defaults to the
        identity for every state.

        Raises:
            ShapeMismatch: an array has the wrong shape
            ConfigurationError: unknown option, non-stochastic
                probabilities, or a covariance that is not PSD
        """
        config = MarkovConfig.from_options(**options)
        _check_distribution("init_prob", config.init_prob)
        _check_distribution("tran_prob", config.tran_prob)
        for k in range(config.num_states):
            _check_covariance(k, config.sigma[:, :, k])
        self.config = config
        logger.debug(
            "configured HMM with %d states and %d observed dimensions",
            config.num_states,
            config.num_observed,
        )
        return self

    @property
    def configured(self) -> bool:
        return self.config is not None

    def _require_config(self) -> MarkovConfig:
        if self.config is None:
            raise ConfigurationError("Markov model is not configured; call set() first")
        return self.config

    def covariance(self, state: int) -> np.ndarray:
        return self._require_config().sigma[:, :, state]

    def _observations(self, observations: Any) -> np.ndarray:
        config = self._require_config()
        obs = np.asarray(observations, dtype=np.float64)
        if obs.ndim == 1 and config.num_observed == 1:
            obs = obs[:, None]
        if obs.ndim != 2 or obs.shape[1] != config.num_observed:
            raise ShapeMismatch(
                f"Observations have shape {obs.shape}, expected (T, {config.num_observed})"
            )
        return obs

    # ------------------------------------------------------------------
    # Sampling

    def generate(
        self,
        num_samples: int,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Sample a hidden state sequence and its observations.

        Args:
            num_samples: Sequence length T
            seed: Seed for a fresh numpy Generator
            rng: Generator to draw from (takes precedence over seed)

        Returns:
            (states, observations): int array (T,) and float array (T, D)
        """
        config = self._require_config()
        if int(num_samples) != num_samples or num_samples < 0:
            raise ValueError(f"num_samples must be a non-negative integer, got {num_samples!r}")
        if rng is None:
            rng = np.random.default_rng(seed)

        S, D = config.num_states, config.num_observed
        states = np.zeros(num_samples, dtype=int)
        observations = np.zeros((num_samples, D))
        for t in range(num_samples):
            p = config.init_prob if t == 0 else config.tran_prob[states[t - 1]]
            states[t] = rng.choice(S, p=p)
            observations[t] = rng.multivariate_normal(config.mu[states[t]], self.covariance(states[t]))

        logger.debug("generated %d samples", num_samples)
        return states, observations

    # ------------------------------------------------------------------
    # Decoding

    def emission_log_likelihood(self, observations: Any) -> np.ndarray:
        """log p(observations[t] | state s) as a (T, S) array."""
        config = self._require_config()
        obs = self._observations(observations)
        out = np.empty((obs.shape[0], config.num_states))
        if obs.shape[0] == 0:
            return out
        for s in range(config.num_states):
            dist = multivariate_normal(mean=config.mu[s], cov=self.covariance(s), allow_singular=True)
            out[:, s] = np.reshape(dist.logpdf(obs), -1)
        return out

    def infer(self, observations: Any) -> np.ndarray:
        """
        Naive decoding: the most likely emitter of each observation.

        Transitions and the initial distribution are ignored on purpose;
        this is the baseline Viterbi is compared against.
        """
        return np.argmax(self.emission_log_likelihood(observations), axis=1)

    def viterbi(self, observations: Any) -> np.ndarray:
        """
        Most probable hidden state path.

        score[t, s] is the best log-probability of a path ending in s at
        time t; back[t, s] is its predecessor. argmax ties resolve to the
        lowest state index.
        """
        config = self._require_config()
        log_b = self.emission_log_likelihood(observations)
        T, S = log_b.shape
        if T == 0:
            return np.zeros(0, dtype=int)

        log_pi = _log(config.init_prob)
        log_a = _log(config.tran_prob)

        score = np.empty((T, S))
        back = np.zeros((T, S), dtype=int)
        score[0] = log_pi + log_b[0]
        for t in range(1, T):
            cand = score[t - 1][:, None] + log_a
            back[t] = np.argmax(cand, axis=0)
            score[t] = cand[back[t], np.arange(S)] + log_b[t]

        path = np.zeros(T, dtype=int)
        path[-1] = int(np.argmax(score[-1]))
        for t in range(T - 1, 0, -1):
            path[t - 1] = back[t, path[t]]

        logger.debug("viterbi decoded %d steps, best log-probability %.4f", T, score[-1, path[-1]])
        return path

    def log_likelihood(self, observations: Any) -> float:
        """log p(observations) by the forward algorithm in log space."""
        config = self._require_config()
        log_b = self.emission_log_likelihood(observations)
        if log_b.shape[0] == 0:
            return 0.0
        log_a = _log(config.tran_prob)
        alpha = _log(config.init_prob) + log_b[0]
        for t in range(1, log_b.shape[0]):
            alpha = logsumexp(alpha[:, None] + log_a, axis=0) + log_b[t]
        return float(logsumexp(alpha))

    def state_labels(self, states: Sequence[int]) -> List[str]:
        """Map state indices to state names."""
        names = self._require_config().state_names
        return [names[int(s)] for s in states]
