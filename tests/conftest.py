import pytest

from dtreepy import Attribute, AttributeSet, AttributeType, DecisionTree

# Sex, Age, Blood_pressure -> Drug
DRUG_ROWS = [
    ("male", 20, "normal", "A"),
    ("female", 73, "normal", "B"),
    ("female", 37, "high", "A"),
    ("male", 33, "low", "B"),
    ("female", 48, "high", "A"),
    ("male", 29, "normal", "A"),
    ("female", 52, "normal", "B"),
    ("male", 42, "low", "B"),
    ("male", 61, "normal", "B"),
    ("female", 30, "normal", "A"),
    ("female", 26, "low", "B"),
    ("male", 54, "high", "A"),
]


def drug_attset():
    return AttributeSet([
        Attribute("Sex", AttributeType.NOMINAL, ["female", "male"]),
        Attribute("Age", AttributeType.INTEGER),
        Attribute("Blood_pressure", AttributeType.NOMINAL, ["high", "low", "normal"]),
        Attribute("Drug", AttributeType.NOMINAL, ["A", "B"]),
    ])


def add_leaf(dt, index, freqs):
    """Create a nominal leaf below branch ``index`` of the current node."""
    dt.down(index)
    dt.create_node()
    for cls, frq in enumerate(freqs):
        dt.set_frequency(cls, frq)
    dt.up()


def build_drug_tree(attset=None):
    """Blood_pressure: high -> A, low -> B, normal -> Age <= 41 -> A, else B."""
    dt = DecisionTree(attset or drug_attset(), target="Drug")
    dt.create_node("Blood_pressure")
    add_leaf(dt, 0, [3, 0])
    add_leaf(dt, 1, [0, 3])
    dt.down(2)
    dt.create_node("Age", 41)
    add_leaf(dt, 0, [3, 0])
    add_leaf(dt, 1, [0, 3])
    dt.up(root=True)
    return dt


def build_regression_tree(target_type=AttributeType.FLOAT):
    """X <= 5 -> 2.0 (sse 1.0, 4 cases), X > 5 -> 6.0 (sse 4.0, 4 cases)."""
    attset = AttributeSet([
        Attribute("X", AttributeType.FLOAT),
        Attribute("Y", target_type),
    ])
    dt = DecisionTree(attset)
    dt.create_node("X", 5.0)
    dt.down(0)
    dt.create_node()
    dt.set_prediction(2.0, 1.0, 4)
    dt.up()
    dt.down(1)
    dt.create_node()
    dt.set_prediction(6.0, 4.0, 4)
    dt.up()
    return dt


@pytest.fixture
def attset():
    return drug_attset()


@pytest.fixture
def drug_tree(attset):
    return build_drug_tree(attset)


@pytest.fixture
def regression_tree():
    return build_regression_tree()
