import math

import numpy as np
import pytest

from conftest import DRUG_ROWS, add_leaf, build_regression_tree
from dtreepy import AttributeType, DecisionTree, infer
from dtreepy.aggregate import aggregate


# ----------------------------------------------------------------------
# Aggregation
# ----------------------------------------------------------------------

def test_aggregate_nominal_statistics(drug_tree):
    assert aggregate(drug_tree) == 12
    root = drug_tree.root
    np.testing.assert_allclose(root.freqs, [6, 6])
    assert root.frequency == 12
    assert root.value == 0          # tie: lowest class id
    assert root.error == 6
    drug_tree.down(2)
    age = drug_tree.current
    np.testing.assert_allclose(age.freqs, [3, 3])
    assert age.frequency == 6


def test_aggregate_leaf_majority_and_error(attset):
    dt = DecisionTree(attset)
    dt.create_node()
    dt.set_frequency(0, 1)
    dt.set_frequency(1, 4)
    assert dt.total() == 5
    assert dt.root.value == 1
    assert dt.root.error == 1


def test_aggregate_skips_aliases(attset):
    dt = DecisionTree(attset)
    dt.create_node("Blood_pressure")
    add_leaf(dt, 0, [3, 1])
    dt.alias(1, 0)
    dt.alias(2, 0)
    assert dt.total() == 4


def test_aggregate_metric(regression_tree):
    assert regression_tree.total() == 8
    root = regression_tree.root
    assert root.value == pytest.approx(4.0)
    # S2 = (1 + 4*4) + (4 + 4*36) = 165, error = S2 - mean * S1
    assert root.error == pytest.approx(165.0 - 4.0 * 32.0)


def test_aggregate_empty_tree(attset):
    assert aggregate(DecisionTree(attset)) == 0.0


def test_aggregate_consistency(drug_tree):
    drug_tree.total()
    leaves = [n for n in drug_tree.nodes() if n.is_leaf]
    assert sum(n.frequency for n in leaves) == drug_tree.root.frequency


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

def test_drug_scenario(drug_tree):
    pred = drug_tree.infer(["male", 20, "normal", None])
    assert pred.value == 0
    assert pred.support == 3
    assert pred.confidence == 1.0
    np.testing.assert_allclose(pred.distribution, [1.0, 0.0])


def test_all_training_rows_classified(drug_tree):
    target = drug_tree.target
    for sex, age, bp, drug in DRUG_ROWS:
        pred = infer(drug_tree, {"Sex": sex, "Age": age, "Blood_pressure": bp})
        assert target.value_name(pred.value) == drug


def test_value_equal_to_cut_is_unknown(drug_tree):
    pred = drug_tree.infer(["male", 41, "normal", None])
    assert pred.support == 6
    assert pred.value == 0
    assert pred.confidence == 0.5


def test_null_fans_out_to_all_children(drug_tree):
    pred = drug_tree.infer({"Age": 30})
    # Blood_pressure unknown: every subtree contributes unweighted
    assert pred.support == 9
    np.testing.assert_allclose(pred.distribution, [6 / 9, 3 / 9])
    assert drug_tree.infer([None, float("nan"), None, None]).support == 12
    assert drug_tree.infer({"Blood_pressure": "purple"}).support == 12


def test_nominal_values_by_id(drug_tree):
    assert drug_tree.infer([1, 20, 2, None]).support == 3
    assert drug_tree.infer({2: 0}).value == 0


def test_non_occurring_value_weight_is_linear(attset):
    dt = DecisionTree(attset)
    dt.create_node("Blood_pressure")
    add_leaf(dt, 0, [3, 0])
    add_leaf(dt, 1, [0, 3])
    row = {"Blood_pressure": "normal"}          # branch without subtree
    p1 = dt.infer(row, weight=0.5)
    p2 = dt.infer(row, weight=0.25)
    assert p1.support == pytest.approx(3.0)
    assert p2.support == pytest.approx(1.5)
    np.testing.assert_allclose(p1.distribution, p2.distribution)
    # negative weight: treated like an unknown value
    assert dt.infer(row, weight=-1).support == 6


def test_default_weight_keeps_distribution(attset):
    dt = DecisionTree(attset)
    dt.create_node("Blood_pressure")
    add_leaf(dt, 0, [3, 1])
    pred = dt.infer({"Blood_pressure": "low"})
    assert pred.support == pytest.approx(4e-12)
    assert pred.value == 0
    assert pred.confidence == pytest.approx(0.75)


def test_current_instance_used_without_row(drug_tree, attset):
    attset.set_instance(["female", 73, "normal", None])
    assert drug_tree.infer().value == 1


def test_empty_tree_prediction(attset):
    pred = DecisionTree(attset).infer(["male", 20, "normal", None])
    assert pred.support == 0
    assert pred.value == 0
    assert pred.confidence == 0.0


def test_metric_prediction(regression_tree):
    low = regression_tree.infer([1.0, None])
    assert low.value == pytest.approx(2.0)
    assert low.support == 4
    assert low.confidence == pytest.approx(0.5)
    assert low.distribution is None

    unknown = regression_tree.infer([5.0, None])       # equal to the cut
    assert unknown.value == pytest.approx(4.0)
    assert unknown.support == 8
    assert unknown.confidence == pytest.approx(math.sqrt((165.0 - 4.0 * 32.0) / 8))


def test_metric_fallback_weight():
    dt = build_regression_tree(AttributeType.FLOAT)
    dt.clear()
    dt.create_node("X", 5.0)
    dt.down(0)
    dt.create_node()
    dt.set_prediction(2.0, 0.0, 4)
    dt.up()
    pred = dt.infer([9.0, None], weight=0.5)
    assert pred.support == pytest.approx(2.0)
    assert pred.value == pytest.approx(2.0)
    assert pred.confidence == pytest.approx(0.0, abs=1e-6)
