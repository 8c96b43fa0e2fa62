"""
Tests for FactorTable operations.
"""

import numpy as np
import pytest

from pgmkit.algebra.factor import FactorTable, domain_index
from pgmkit.algebra.semiring import Mode
from pgmkit.errors import (
    DegenerateTable,
    IncompatibleDomains,
    InvalidDomain,
    NoMatchingRows,
    VariableNotFound,
)


def entries(table):
    """Rows keyed independently of variable order."""
    return {
        frozenset(zip(table.variables, assignment)): weight
        for assignment, weight in table.rows()
    }


def assert_same_entries(t1, t2):
    e1, e2 = entries(t1), entries(t2)
    assert e1.keys() == e2.keys()
    for k in e1:
        assert e1[k] == pytest.approx(e2[k])


@pytest.fixture
def f_ab():
    return FactorTable(("A", "B"), ((0, 1), ("x", "y", "z")), np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]))


@pytest.fixture
def f_bc():
    return FactorTable(("B", "C"), (("x", "y", "z"), (True, False)), np.arange(1.0, 7.0).reshape(3, 2))


@pytest.fixture
def f_c():
    return FactorTable(("C",), ((True, False),), np.array([0.3, 0.7]))


class TestConstruction:
    def test_make_uniform_conditional(self):
        t = FactorTable.make(("X", "P"), ((1, 2, 3), (True, False)), conditioning=("P",))
        assert t.shape == (3, 2)
        assert np.allclose(t.data, 1.0 / 3.0)
        assert t.conditioning == ("P",)

    def test_make_uniform_joint(self):
        t = FactorTable.make(("X", "Y"), ((1, 2), (1, 2)))
        assert np.allclose(t.data, 0.25)

    def test_make_zero(self):
        t = FactorTable.make(("X",), (("a", "b"),), fill="zero")
        assert np.all(t.data == 0.0)

    def test_empty_domain_raises(self):
        with pytest.raises(InvalidDomain):
            FactorTable.make(("X", "Y"), ((1, 2), ()))

    def test_repeated_domain_value_raises(self):
        with pytest.raises(InvalidDomain):
            FactorTable(("X",), ((1, 1),), np.array([0.5, 0.5]))

    def test_shape_mismatch_raises(self):
        with pytest.raises(ValueError):
            FactorTable(("X",), ((1, 2),), np.array([0.1, 0.2, 0.7]))

    def test_negative_weight_raises(self):
        with pytest.raises(ValueError):
            FactorTable(("X",), ((1, 2),), np.array([-0.1, 1.1]))

    def test_flat_rows_are_reshaped(self):
        t = FactorTable(("A", "B"), ((0, 1), (0, 1)), [1.0, 2.0, 3.0, 4.0])
        assert t.value({"A": 1, "B": 0}) == 3.0

    def test_data_is_read_only(self, f_ab):
        with pytest.raises(ValueError):
            f_ab.data[0, 0] = 10.0

    def test_rows_follow_domain_order(self, f_ab):
        rows = list(f_ab.rows())
        assert rows[:3] == [((0, "x"), 1.0), ((0, "y"), 2.0), ((0, "z"), 3.0)]
        assert len(rows) == 6

    def test_bool_is_not_an_integer_value(self):
        assert domain_index((0, 1, 2), True) is None
        assert domain_index((True, False), 1) is None
        assert domain_index((0, 1, 2), 1.0) == 1
        with pytest.raises(NoMatchingRows):
            FactorTable.indicator("X", (0, 1), True)

    def test_indicator(self):
        t = FactorTable.indicator("X", ("a", "b", "c"), "b")
        assert t.data.tolist() == [0.0, 1.0, 0.0]
        with pytest.raises(NoMatchingRows):
            FactorTable.indicator("X", ("a", "b"), "z")


class TestSubtable:
    def test_restrict_keeps_matching_rows(self, f_ab):
        sub = f_ab.get_subtable({"A": 1})
        assert sub.variables == ("A", "B")
        assert sub.domains[0] == (1,)
        assert sub.to_dict() == {(1, "x"): 4.0, (1, "y"): 5.0, (1, "z"): 6.0}

    def test_restrict_two_variables(self, f_ab):
        sub = f_ab.get_subtable({"A": 0, "B": "z"})
        assert sub.to_dict() == {(0, "z"): 3.0}

    def test_unrelated_variables_are_ignored(self, f_ab):
        sub = f_ab.get_subtable({"Q": 42})
        assert sub.to_dict() == f_ab.to_dict()

    def test_value_outside_domain_raises(self, f_ab):
        with pytest.raises(NoMatchingRows):
            f_ab.get_subtable({"B": "w"})

    def test_operand_unchanged(self, f_ab):
        f_ab.get_subtable({"A": 0})
        assert f_ab.shape == (2, 3)


class TestMultiply:
    def test_variable_order(self, f_ab, f_bc):
        h = f_ab.multiply(f_bc)
        assert h.variables == ("A", "B", "C")
        assert (f_bc * f_ab).variables == ("B", "C", "A")

    def test_values(self, f_ab, f_bc):
        h = f_ab * f_bc
        assert h.value({"A": 1, "B": "y", "C": False}) == pytest.approx(5.0 * 4.0)
        assert h.value({"A": 0, "B": "z", "C": True}) == pytest.approx(3.0 * 5.0)

    def test_commutative(self, f_ab, f_bc):
        assert_same_entries(f_ab * f_bc, f_bc * f_ab)

    def test_associative(self, f_ab, f_bc, f_c):
        assert_same_entries((f_ab * f_bc) * f_c, f_ab * (f_bc * f_c))

    def test_disjoint_is_outer_product(self, f_c):
        g = FactorTable(("D",), ((1, 2),), np.array([2.0, 3.0]))
        h = f_c * g
        assert h.shape == (2, 2)
        assert np.allclose(h.data, np.outer([0.3, 0.7], [2.0, 3.0]))

    def test_reordered_domain_is_aligned(self):
        f = FactorTable(("X",), ((0, 1),), [0.2, 0.8])
        g = FactorTable(("X",), ((1, 0),), [0.8, 0.2])
        h = f.multiply(g)
        assert h.domains == ((0, 1),)
        assert h.to_dict() == pytest.approx({(0,): 0.04, (1,): 0.64})

    def test_reordered_domain_in_larger_table(self, f_ab):
        g = FactorTable(("B",), (("z", "x", "y"),), [3.0, 1.0, 2.0])
        h = f_ab * g
        assert h.domains == f_ab.domains
        assert h.value({"A": 1, "B": "z"}) == pytest.approx(18.0)
        assert h.value({"A": 0, "B": "x"}) == pytest.approx(1.0)

    def test_bool_and_int_domains_differ(self):
        f = FactorTable(("X",), ((True, False),), [0.5, 0.5])
        g = FactorTable(("X",), ((1, 0),), [0.5, 0.5])
        with pytest.raises(IncompatibleDomains):
            f.multiply(g)

    def test_incompatible_domains_raise(self, f_ab):
        other = FactorTable(("B",), (("x", "y"),), np.array([1.0, 1.0]))
        with pytest.raises(IncompatibleDomains):
            f_ab.multiply(other)

    def test_conditioning_resolved_by_prior(self):
        p_a_given_b = FactorTable(("A", "B"), ((0, 1), (0, 1)), [[0.9, 0.2], [0.1, 0.8]], ("B",))
        p_b = FactorTable(("B",), ((0, 1),), [0.4, 0.6])
        joint = p_a_given_b * p_b
        assert joint.conditioning == ()
        assert joint.total() == pytest.approx(1.0)

    def test_conditioning_kept_when_shared(self):
        p_a = FactorTable(("A", "B"), ((0, 1), (0, 1)), [[0.9, 0.2], [0.1, 0.8]], ("B",))
        p_c = FactorTable(("C", "B"), ((0, 1), (0, 1)), [[0.5, 0.3], [0.5, 0.7]], ("B",))
        assert (p_a * p_c).conditioning == ("B",)


class TestMarginalize:
    def test_sum_out(self, f_ab):
        m = f_ab.marginalize(["B"])
        assert m.variables == ("A",)
        assert np.allclose(m.data, [6.0, 15.0])

    def test_max_out(self, f_ab):
        m = f_ab.marginalize("B", mode=Mode.MAX_PRODUCT)
        assert np.allclose(m.data, [3.0, 6.0])

    def test_mode_by_name(self, f_ab):
        assert np.allclose(f_ab.marginalize(["A"], mode="max").data, [4.0, 5.0, 6.0])

    def test_project_reorders(self, f_ab):
        p = f_ab.project(("B", "A"))
        assert p.variables == ("B", "A")
        assert np.allclose(p.data, f_ab.data.T)

    def test_project_to_nothing(self, f_ab):
        p = f_ab.project(())
        assert p.variables == ()
        assert float(p.data) == pytest.approx(21.0)

    def test_unknown_variable_raises(self, f_ab):
        with pytest.raises(VariableNotFound):
            f_ab.marginalize(["Z"])


class TestDistribution:
    def test_joint_sums_to_one(self, f_ab):
        d = f_ab.make_distribution()
        assert d.total() == pytest.approx(1.0)
        assert d.value({"A": 1, "B": "z"}) == pytest.approx(6.0 / 21.0)

    def test_conditional_sums_to_one_per_parent(self, f_ab):
        d = f_ab.make_distribution(conditioning=("B",))
        assert np.allclose(d.data.sum(axis=0), 1.0)
        assert d.conditioning == ("B",)

    def test_idempotent(self, f_ab):
        once = f_ab.make_distribution(conditioning=("A",))
        twice = once.make_distribution()
        assert np.allclose(once.data, twice.data)
        assert np.allclose(twice.data.sum(axis=1), 1.0)

    def test_zero_denominator_raises(self):
        t = FactorTable(("A", "B"), ((0, 1), (0, 1)), [[0.0, 1.0], [0.0, 1.0]])
        with pytest.raises(DegenerateTable):
            t.make_distribution(conditioning=("B",))

    def test_argmax_first_on_ties(self):
        t = FactorTable(("X",), ((0, 1, 2),), [0.2, 0.4, 0.4])
        assert t.argmax() == {"X": 1}
