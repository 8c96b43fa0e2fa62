"""
Tests for Node definition, estimation, evidence and evaluation.
"""

import gc

import numpy as np
import pytest

from pgmkit.algebra.factor import FactorTable
from pgmkit.algebra.semiring import Mode
from pgmkit.config import NodeKind
from pgmkit.errors import (
    ConfigurationError,
    CyclicDependency,
    DuplicateParent,
    EmptyMessageSet,
    InsufficientData,
    InvalidDomain,
    NoMatchingRows,
    UnorderedDomain,
    VariableNotFound,
)
from pgmkit.graph.message import Message, MessageKind
from pgmkit.graph.node import Node


class TestDefine:
    def test_defaults(self):
        a = Node("A").define()
        assert a.domain == (True, False)
        assert a.kind is NodeKind.VARIABLE
        assert a.table is None
        assert np.allclose(a.query().data, [0.5, 0.5])

    def test_unknown_option_raises(self):
        with pytest.raises(ConfigurationError):
            Node("A", colour="red")

    def test_unknown_type_raises(self):
        with pytest.raises(ConfigurationError):
            Node("A", type="clique")

    def test_factor_table_skeleton(self):
        b = Node("B", values=[1, 2, 3]).define()
        a = Node("A", type="factor", parents=[b]).define()
        assert a.table.variables == ("A", "B")
        assert a.table.shape == (2, 3)
        assert a.table.conditioning == ("B",)
        assert np.allclose(a.table.data, 0.5)

    def test_options_at_define_override(self):
        a = Node("A", values=[1, 2]).define(values=["lo", "mid", "hi"], type="factor")
        assert a.domain == ("lo", "mid", "hi")
        assert a.table.shape == (3,)

    def test_define_twice_raises(self):
        a = Node("A").define()
        with pytest.raises(ConfigurationError):
            a.define()

    def test_empty_domain_raises(self):
        with pytest.raises(InvalidDomain):
            Node("A", values=[]).define()

    def test_repeated_domain_value_raises(self):
        with pytest.raises(InvalidDomain):
            Node("A", values=["x", "x"]).define()

    def test_duplicate_parent_raises(self):
        b = Node("B").define()
        with pytest.raises(DuplicateParent):
            Node("A", type="factor", parents=[b, b]).define()

    def test_self_parent_raises(self):
        a = Node("A", type="factor")
        with pytest.raises(CyclicDependency):
            a.define(parents=[a])

    def test_indirect_cycle_raises(self):
        b = Node("B", type="factor")
        a = Node("A", type="factor", parents=[b]).define()
        with pytest.raises(CyclicDependency):
            b.define(parents=[a])

    def test_variable_node_with_parents_raises(self):
        b = Node("B").define()
        with pytest.raises(ConfigurationError):
            Node("A", parents=[b]).define()

    def test_parent_must_be_node(self):
        with pytest.raises(ConfigurationError):
            Node("A", type="factor", parents=["B"]).define()

    def test_parents_are_weak(self):
        def make_child():
            p = Node("P").define()
            return Node("C", type="factor", parents=[p]).define()

        child = make_child()
        gc.collect()
        with pytest.raises(ReferenceError):
            child.parents


class TestTables:
    @pytest.fixture
    def pair(self):
        a = Node("A", type="factor").define()
        b = Node("B", type="factor", parents=[a]).define()
        return a, b

    def test_set_table(self, pair):
        _, b = pair
        b.set_table([[0.9, 0.2], [0.1, 0.8]])
        assert b.table.value({"B": False, "A": False}) == pytest.approx(0.8)

    def test_set_table_wrong_shape(self, pair):
        _, b = pair
        with pytest.raises(ValueError):
            b.set_table([0.5, 0.5, 0.5])

    def test_set_table_on_variable_node(self):
        with pytest.raises(ConfigurationError):
            Node("X").define().set_table([0.5, 0.5])

    def test_set_conditionals_columns(self, pair):
        a, b = pair
        data = {"A": [True, True, False, False, False], "B": [True, False, False, False, True]}
        a.set_conditionals(data)
        b.set_conditionals(data)
        assert a.table.value({"A": True}) == pytest.approx(0.4)
        assert b.table.value({"B": True, "A": True}) == pytest.approx(0.5)
        assert b.table.value({"B": True, "A": False}) == pytest.approx(1.0 / 3.0)
        assert np.allclose(b.table.data.sum(axis=0), 1.0)

    def test_set_conditionals_rows(self, pair):
        _, b = pair
        rows = [
            {"A": True, "B": True},
            {"A": True, "B": True},
            {"A": True, "B": False},
            {"A": False, "B": False},
        ]
        b.set_conditionals(rows)
        assert b.table.value({"B": True, "A": True}) == pytest.approx(2.0 / 3.0)
        assert b.table.value({"B": False, "A": False}) == pytest.approx(1.0)

    def test_set_conditionals_generator_columns(self, pair):
        _, b = pair
        a_col = [True, True, False, False]
        b_col = [True, False, False, False]
        b.set_conditionals({"A": (v for v in a_col), "B": (v for v in b_col)})
        assert b.table.value({"B": True, "A": True}) == pytest.approx(0.5)
        assert b.table.value({"B": False, "A": False}) == pytest.approx(1.0)

    def test_unseen_parent_assignment(self, pair):
        _, b = pair
        with pytest.raises(InsufficientData):
            b.set_conditionals({"A": [True, True], "B": [True, False]})

    def test_value_outside_domain(self, pair):
        _, b = pair
        with pytest.raises(NoMatchingRows):
            b.set_conditionals({"A": [True, False], "B": [True, "maybe"]})

    def test_missing_column(self, pair):
        _, b = pair
        with pytest.raises(VariableNotFound):
            b.set_conditionals({"B": [True, False]})


class TestEvidence:
    def test_observe(self):
        a = Node("A", values=["x", "y"]).define()
        assert a.observe("y") == "y"
        assert a.evidence().data.tolist() == [0.0, 1.0]
        a.clear_observation()
        assert a.evidence() is None

    def test_observe_outside_domain(self):
        with pytest.raises(NoMatchingRows):
            Node("A").define().observe("maybe")

    def test_observe_bool_on_integer_domain(self):
        b = Node("B", values=[0, 1, 2]).define()
        with pytest.raises(NoMatchingRows):
            b.observe(True)
        assert b.observe(1) == 1

    def test_quantize_nearest(self):
        q = Node("Q", values=[0, 5, 10]).define()
        assert q.quantize(6.2) == 5
        assert q.observed == 5
        assert q.quantize(-3) == 0
        assert q.quantize(99.0) == 10

    def test_quantize_tie_goes_first(self):
        q = Node("Q", values=[0, 5, 10]).define()
        assert q.quantize(2.5) == 0

    def test_quantize_boolean_domain(self):
        with pytest.raises(UnorderedDomain):
            Node("A").define().quantize(0.7)

    def test_quantize_symbolic_domain(self):
        with pytest.raises(UnorderedDomain):
            Node("A", values=["lo", "hi"]).define().quantize(1.0)


class TestEvaluate:
    @pytest.fixture
    def child(self):
        a = Node("A", type="factor").define()
        b = Node("B", type="factor", parents=[a]).define()
        b.set_table([[0.9, 0.2], [0.1, 0.8]])
        return a, b

    @staticmethod
    def message(values):
        return Message(
            source="A",
            destination="B",
            kind=MessageKind.FACTOR_TO_VARIABLE,
            table=FactorTable(("A",), ((True, False),), values),
        )

    def test_root_factor_without_messages(self):
        a = Node("A", type="factor").define()
        a.set_table([0.3, 0.7])
        assert np.allclose(a.evaluate([]).data, [0.3, 0.7])

    def test_variable_without_messages_raises(self):
        with pytest.raises(EmptyMessageSet):
            Node("X").define().evaluate([])

    def test_product_of_messages(self):
        x = Node("X").define()
        m1 = FactorTable(("X",), ((True, False),), [0.2, 0.8])
        m2 = FactorTable(("X",), ((True, False),), [0.6, 0.4])
        belief = x.evaluate([m1, m2])
        assert np.allclose(belief.data, [0.12 / 0.44, 0.32 / 0.44])
        assert x.belief is belief
        assert x.query() is belief

    def test_sum_product(self, child):
        _, b = child
        belief = b.evaluate([self.message([0.5, 0.5])])
        assert belief.variables == ("B",)
        assert np.allclose(belief.data, [0.55, 0.45])

    def test_max_product(self, child):
        _, b = child
        belief = b.evaluate([self.message([0.5, 0.5])], mode=Mode.MAX_PRODUCT)
        assert np.allclose(belief.data, [0.45 / 0.85, 0.4 / 0.85])

    def test_evidence_pins_belief(self, child):
        _, b = child
        b.observe(False)
        belief = b.evaluate([self.message([0.5, 0.5])])
        assert np.allclose(belief.data, [0.0, 1.0])

    def test_reset(self, child):
        _, b = child
        b.evaluate([self.message([0.5, 0.5])])
        b.reset()
        assert b.belief is None
        assert b.query() is b.table
