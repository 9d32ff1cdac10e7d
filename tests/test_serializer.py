import io

import numpy as np
import pytest

from conftest import add_leaf, build_regression_tree
from dtreepy import (
    Attribute,
    AttributeSet,
    AttributeType,
    DecisionTree,
    DescribeMode,
    TreeSyntaxError,
    load_tree,
    parse_tree,
)
from dtreepy.scanner import CHAR, EOF, ID, NUM, format_name, format_number, tokenize

DRUG_TEXT = (
    "tree(Drug) =\n"
    "{ (Blood_pressure)\n"
    "  high:{ A: 3 },\n"
    "  low:{ B: 3 },\n"
    "  normal:{ (Age|41)\n"
    "      <:{ A: 3 },\n"
    "      >:{ B: 3 }}};\n"
)


# ----------------------------------------------------------------------
# Scanner
# ----------------------------------------------------------------------

def test_tokenize_kinds_and_positions():
    toks = list(tokenize('tree ( "Blood pressure" ) 1.5e3 /* c\n */ -2 // x\n :'))
    assert [t.kind for t in toks] == [ID, CHAR, ID, CHAR, NUM, NUM, CHAR, EOF]
    assert toks[2].text == "Blood pressure"
    assert toks[5].text == "-2"
    assert (toks[5].line, toks[5].column) == (2, 5)
    assert (toks[6].line, toks[6].column) == (3, 2)


def test_tokenize_unterminated_string():
    with pytest.raises(TreeSyntaxError):
        list(tokenize('tree("Drug'))


def test_format_name_quotes_when_needed():
    assert format_name("Drug") == "Drug"
    assert format_name("42") == "42"
    assert format_name("Blood pressure") == '"Blood pressure"'
    assert format_name('say "hi"') == '"say \\"hi\\""'


def test_format_number_round_trips():
    assert format_number(3.0) == "3"
    assert format_number(0.1) == "0.1"
    assert float(format_number(1 / 3)) == 1 / 3


# ----------------------------------------------------------------------
# Printer
# ----------------------------------------------------------------------

def test_describe_drug_tree(drug_tree):
    assert drug_tree.describe() == DRUG_TEXT


def test_describe_writes_to_file(drug_tree):
    buf = io.StringIO()
    text = drug_tree.describe(buf)
    assert buf.getvalue() == text


def test_describe_empty_tree(attset):
    assert DecisionTree(attset).describe() == "tree(Drug) =\n{ };\n"


def test_describe_aliases_aligned(attset):
    dt = DecisionTree(attset)
    dt.create_node("Blood_pressure")
    add_leaf(dt, 0, [3, 0])
    dt.alias(1, 0)
    add_leaf(dt, 2, [0, 3])
    assert dt.describe() == (
        "tree(Drug) =\n"
        "{ (Blood_pressure)\n"
        "  high,low:{ A: 3 },\n"
        "  normal:{ B: 3 }};\n"
    )
    assert dt.describe(mode=DescribeMode.ALIGN) == (
        "tree(Drug) =\n"
        "{ (Blood_pressure)\n"
        "  high,\n"
        "  low   :{ A: 3 },\n"
        "  normal:{ B: 3 }};\n"
    )


def test_describe_relative_frequencies(attset):
    dt = DecisionTree(attset)
    dt.create_node()
    dt.set_frequency(0, 1)
    dt.set_frequency(1, 3)
    assert "{ A: 1 (25.0%), B: 3 (75.0%) }" in dt.describe(mode=DescribeMode.REL)


def test_describe_omits_zero_classes(attset):
    dt = DecisionTree(attset)
    dt.create_node()
    dt.set_frequency(1, 2)
    assert dt.describe() == "tree(Drug) =\n{ B: 2 };\n"


def test_describe_title_and_info(drug_tree):
    text = drug_tree.describe(mode=DescribeMode.TITLE | DescribeMode.INFO)
    assert text.startswith("/*---")
    assert "  decision tree\n" in text
    assert "number of attributes: 2+1" in text
    assert "number of levels    : 3" in text
    assert "number of nodes     : 6" in text
    assert "number of tuples    : 12" in text
    assert "regression tree" in build_regression_tree().describe(mode=DescribeMode.TITLE)


def test_describe_wraps_long_leaves():
    classes = [f"class_{i:02d}" for i in range(12)]
    attset = AttributeSet([Attribute("C", AttributeType.NOMINAL, classes)])
    dt = DecisionTree(attset)
    dt.create_node()
    for cls in range(12):
        dt.set_frequency(cls, 10 + cls)
    text = dt.describe(max_width=40)
    body = text.splitlines()[1:]
    assert len(body) > 1
    assert all(len(line) <= 40 for line in body)
    assert parse_tree(attset, text).tree.describe(max_width=40) == text



def test_describe_wraps_long_branch_labels():
    names = [f"value_with_a_long_name_{i}" for i in range(5)]
    attset = AttributeSet([
        Attribute("Long", AttributeType.NOMINAL, names),
        Attribute("C", AttributeType.NOMINAL, ["A", "B"]),
    ])
    dt = DecisionTree(attset)
    dt.create_node("Long")
    add_leaf(dt, 0, [3, 1])
    for src in (1, 2, 3):
        dt.alias(src, 0)
    text = dt.describe(max_width=40)
    assert all(len(line) <= 40 for line in text.splitlines())
    parsed = parse_tree(attset, text).tree
    assert parsed.root.group(0) == [0, 1, 2, 3]
    assert parsed.describe(max_width=40) == text
    assert dt.describe(max_width=0).count("\n") == 3

def test_describe_metric_leaf(regression_tree):
    text = regression_tree.describe()
    assert "(X|5)" in text
    assert "{ 2 ~" in text and "[4] }" in text


# ----------------------------------------------------------------------
# Parser
# ----------------------------------------------------------------------

def test_round_trip_drug(drug_tree, attset):
    result = parse_tree(attset, drug_tree.describe())
    assert result.ok
    assert result.errors == []
    assert result.tree.describe() == DRUG_TEXT
    assert result.tree.total() == 12
    assert result.tree.size == 6
    assert result.tree.height == 3


def test_round_trip_aliases(attset):
    dt = DecisionTree(attset)
    dt.create_node("Blood_pressure")
    add_leaf(dt, 2, [1, 4])
    dt.alias(0, 2)
    dt.alias(1, 2)
    text = dt.describe(mode=DescribeMode.ALIGN)
    parsed = parse_tree(attset, text).tree
    assert parsed.describe(mode=DescribeMode.ALIGN) == text
    assert parsed.root.resolve(0) == 2
    assert parsed.root.resolve(1) == 2
    assert parsed.size == 2


def test_round_trip_metric(regression_tree):
    text = regression_tree.describe()
    parsed = parse_tree(regression_tree.attset, text).tree
    assert parsed.total() == 8
    assert parsed.root.value == pytest.approx(4.0)
    parsed.down(0)
    assert parsed.current.error == pytest.approx(1.0)
    assert parsed.describe() == text


def test_round_trip_quoted_names():
    attset = AttributeSet([
        Attribute("Blood pressure", AttributeType.NOMINAL, ["very high", "low"]),
        Attribute("Drug", AttributeType.NOMINAL, ["A", "B"]),
    ])
    dt = DecisionTree(attset)
    dt.create_node("Blood pressure")
    add_leaf(dt, 0, [2, 0])
    add_leaf(dt, 1, [0, 1])
    text = dt.describe()
    assert '"very high":' in text
    assert parse_tree(attset, text).tree.describe() == text


def test_parse_accepts_dtree_keyword_and_comments(attset):
    text = "/* model */ dtree(Drug) = // target\n{ A: 2, B: 1 (33.3%) };"
    result = parse_tree(attset, text)
    assert result.ok
    np.testing.assert_allclose(result.tree.root.freqs, [2, 1])


def test_parse_empty_tree(attset):
    result = parse_tree(attset, "tree(Drug) = { };")
    assert result.tree.root is None
    assert result.tree.total() == 0


def test_load_tree_from_file(tmp_path, drug_tree, attset):
    path = tmp_path / "drug.dt"
    path.write_text(drug_tree.describe())
    assert load_tree(attset, path).tree.describe() == DRUG_TEXT
    with open(path) as fh:
        assert load_tree(attset, fh).ok


def test_unknown_attribute_is_recoverable(attset):
    text = ("tree(Drug) = { (Blood_pressure)\n"
            "  high:{ (Weight) <:{ A: 1 }, >:{ B: 1 } },\n"
            "  low:{ B: 3 } };")
    result = parse_tree(attset, text)
    assert not result.ok
    assert len(result.errors) == 1
    err = result.errors[0]
    assert "unknown attribute" in err.message
    assert (err.line, err.column, err.token) == (2, 11, "Weight")
    tree = result.tree
    assert tree.size == 2
    assert tree.root.branches[0].is_empty
    assert tree.total() == 3


def test_unknown_value_in_label_is_recoverable(attset):
    text = "tree(Drug) = { (Blood_pressure) high,purple:{ A: 3 }, low:{ B: 3 } };"
    result = parse_tree(attset, text)
    assert len(result.errors) == 1
    assert "purple" in result.errors[0].message
    assert result.tree.root.branches[0].is_empty
    assert result.tree.size == 2


def test_duplicate_value_in_label_is_recoverable(attset):
    text = "tree(Drug) = { (Blood_pressure) high:{ A: 3 }, low,high:{ B: 1 }, normal:{ B: 2 } };"
    result = parse_tree(attset, text)
    assert len(result.errors) == 1
    assert "duplicate" in result.errors[0].message
    assert result.tree.root.branches[1].is_empty
    assert result.tree.total() == 5


def test_bad_ordered_label_is_recoverable(attset):
    text = "tree(Drug) = { (Age|40) <:{ A: 1 }, =:{ B: 1 }, >:{ B: 2 } };"
    result = parse_tree(attset, text)
    assert len(result.errors) == 1
    assert result.tree.total() == 3


def test_unknown_and_duplicate_class_are_recoverable(attset):
    result = parse_tree(attset, "tree(Drug) = { A: 3, C: 2, A: 5, B: 1 };")
    assert len(result.errors) == 2
    np.testing.assert_allclose(result.tree.root.freqs, [3, 1])


def test_missing_equals_is_fatal(attset):
    with pytest.raises(TreeSyntaxError) as exc:
        parse_tree(attset, "tree(Drug) { };")
    assert (exc.value.line, exc.value.column) == (1, 12)
    assert exc.value.token == "{"


def test_unknown_target_is_fatal(attset):
    with pytest.raises(TreeSyntaxError, match="unknown target attribute"):
        parse_tree(attset, "tree(Color) = { };")


def test_invalid_number_is_fatal(attset):
    with pytest.raises(TreeSyntaxError, match="invalid number"):
        parse_tree(attset, "tree(Drug) = { A: -1 };")
    with pytest.raises(TreeSyntaxError, match="number expected"):
        parse_tree(attset, "tree(Drug) = { A: many };")


def test_fatal_error_carries_earlier_diagnostics(attset):
    text = "tree(Drug) = { (Blood_pressure) high:{ (Weight) }, low:{ B: 3 }"
    with pytest.raises(TreeSyntaxError) as exc:
        parse_tree(attset, text)
    assert len(exc.value.diagnostics) == 1
    assert "end of input" in exc.value.message


def test_wrong_keyword_is_fatal(attset):
    with pytest.raises(TreeSyntaxError, match="'tree' expected"):
        parse_tree(attset, "rules(Drug) = { };")
