"""
Example: Sprinkler network.

cloudy -> {sprinkler, rain} -> wet

The network has a loop through cloudy and wet, so posteriors come from
variable elimination. Dropping the sprinkler leaves a chain on which
belief propagation gives the same answers.
"""

import logging

import numpy as np

from pgmkit import Graph, Node, setup_logger


def build(with_sprinkler=True):
    cloudy = Node("cloudy", type="factor").define()
    rain = Node("rain", type="factor", parents=[cloudy]).define()
    cloudy.set_table([0.5, 0.5])
    # axis 0 = rain, axis 1 = cloudy
    rain.set_table([[0.8, 0.2], [0.2, 0.8]])

    if not with_sprinkler:
        wet = Node("wet", type="factor", parents=[rain]).define()
        wet.set_table([[0.9, 0.05], [0.1, 0.95]])
        return Graph(cloudy, rain, wet)

    sprinkler = Node("sprinkler", type="factor", parents=[cloudy]).define()
    sprinkler.set_table([[0.1, 0.5], [0.9, 0.5]])
    wet = Node("wet", type="factor", parents=[sprinkler, rain]).define()
    p_wet = np.array([[0.99, 0.9], [0.9, 0.0]])
    wet.set_table(np.stack([p_wet, 1.0 - p_wet]))
    return Graph(cloudy, sprinkler, rain, wet)


def main():
    setup_logger(logging.INFO)

    g = build()
    print("Sprinkler network:", g)

    p = g.query(["rain"], ["wet"], [True])
    print(f"\nP(rain | wet) = {p.value({'rain': True}):.4f}")

    p = g.query(["sprinkler"], ["wet", "rain"], [True, True])
    print(f"P(sprinkler | wet, rain) = {p.value({'sprinkler': True}):.4f}")

    order = ["rain", "cloudy"]
    p = g.eliminate(["sprinkler"], ["wet"], [True], order)
    print(f"P(sprinkler | wet) with order {order} = {p.value({'sprinkler': True}):.4f}")

    # Loop-free variant
    print("\n--- Belief propagation on cloudy -> rain -> wet ---")
    chain = build(with_sprinkler=False)
    chain.node("wet").observe(True)
    beliefs = chain.solve()
    for name, belief in beliefs.items():
        print(f"  P({name} | wet) = {belief.data}")

    ve = chain.query(["cloudy"], ["wet"], [True])
    print(f"Match with elimination: {np.allclose(ve.data, beliefs['cloudy'].data)}")
    print(f"Most probable explanation: {chain.decode()}")


if __name__ == "__main__":
    main()
