"""Tests for manifest decomposition."""

import pytest

from razee_installer import NodeShape, classify, decompose


def cm(name):
    return {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": name}}


def names(docs):
    return [d["metadata"]["name"] for d in docs]


class TestClassify:
    """Test cases for node classification."""

    @pytest.mark.parametrize(
        "node, shape",
        [
            ([], NodeShape.SEQUENCE),
            ((cm("a"),), NodeShape.SEQUENCE),
            ({"kind": "List", "items": []}, NodeShape.LIST_WRAPPER),
            ({"kind": "LIST", "items": [cm("a")]}, NodeShape.LIST_WRAPPER),
            ({"kind": "List"}, NodeShape.OBJECT),
            ({"kind": "List", "items": "nope"}, NodeShape.OBJECT),
            (cm("a"), NodeShape.OBJECT),
            ({}, NodeShape.EMPTY),
            (None, NodeShape.EMPTY),
            ("", NodeShape.EMPTY),
        ],
    )
    def test_shapes(self, node, shape):
        """Test each node shape is recognised."""
        assert classify(node) is shape


class TestDecompose:
    """Test cases for decompose."""

    def test_single_object(self):
        """Test a single document yields itself."""
        doc = cm("a")
        assert list(decompose(doc)) == [doc]

    @pytest.mark.parametrize("node", [None, {}, [], [None, {}, []], {"kind": "List", "items": []}])
    def test_empty_inputs(self, node):
        """Test empty inputs yield nothing."""
        assert list(decompose(node)) == []

    def test_nested_lists_and_arrays_depth_first(self):
        """Test mixed nesting is flattened depth-first, left to right."""
        tree = [
            cm("1"),
            {
                "apiVersion": "v1",
                "kind": "List",
                "metadata": {"name": "wrapper"},
                "items": [
                    cm("2"),
                    [cm("3"), {"kind": "list", "items": [cm("4"), [cm("5")]]}],
                ],
            },
            None,
            [[cm("6")]],
        ]

        result = list(decompose(tree))

        assert names(result) == ["1", "2", "3", "4", "5", "6"]

    def test_list_wrapper_is_not_yielded(self):
        """Test a List wrapper's own metadata is dropped."""
        tree = {"apiVersion": "v1", "kind": "List", "metadata": {"name": "w"}, "items": [cm("a")]}

        result = list(decompose(tree))

        assert names(result) == ["a"]

    def test_deep_nesting(self):
        """Test nesting deeper than the interpreter recursion limit."""
        tree = cm("leaf")
        for _ in range(5000):
            tree = {"kind": "List", "items": [tree]}

        assert names(decompose(tree)) == ["leaf"]

    def test_returns_iterator(self):
        """Test documents are produced lazily."""
        gen = decompose([cm("first"), cm("second")])

        assert iter(gen) is gen
        assert next(gen)["metadata"]["name"] == "first"
