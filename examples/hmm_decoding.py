"""
Example: Decoding a two-state HMM.

Samples a hidden path from a sticky two-state chain with 2-D Gaussian
emissions, then compares naive per-step decoding with Viterbi.
"""

import logging

import numpy as np

from pgmkit import Markov, setup_logger


def main():
    setup_logger(logging.INFO)

    hmm = Markov(
        init_prob=[1.0, 0.0],
        tran_prob=[[0.9, 0.1], [0.1, 0.9]],
        mu=[[1.0, -1.0], [-1.0, 1.0]],
        state_names=["calm", "storm"],
    )

    states, obs = hmm.generate(100, seed=0)
    print(f"Generated {len(states)} samples, {int(np.sum(states))} in state 'storm'")

    naive = hmm.infer(obs)
    path = hmm.viterbi(obs)

    print(f"\nNaive accuracy:   {np.mean(naive == states):.2f}")
    print(f"Viterbi accuracy: {np.mean(path == states):.2f}")
    print(f"log p(observations) = {hmm.log_likelihood(obs):.3f}")

    print("\nFirst 10 steps:")
    print("  true:   ", hmm.state_labels(states[:10]))
    print("  viterbi:", hmm.state_labels(path[:10]))


if __name__ == "__main__":
    main()
