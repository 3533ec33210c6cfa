"""Tests for Cypher serialisation."""

import pytest

from jsgraph.cypher import quote_identifier, render, serialize, serialize_all
from jsgraph.operations import MergeEdge, MergeNode, NodeRef

FUNC = NodeRef.of("Function", name="run", path="/p/app.js")
SYM = NodeRef.of("Symbol", name="log", path="/p/app.js")


class TestQuoting:
    """Tests for identifier quoting."""

    @pytest.mark.parametrize("name,quoted", [
        ("Function", "`Function`"),
        ("my file", "`my file`"),
        ("we`ird", "`we``ird`"),
    ])
    def test_quote_identifier(self, name, quoted):
        assert quote_identifier(name) == quoted


class TestSerialize:
    """Tests for single-operation statements."""

    def test_plain_node(self):
        """Nodes merge on their natural key only."""
        query, params = serialize(MergeNode.of(NodeRef.of("file", name="app")))

        assert query == "MERGE (n:`file` {`name`: $n_k0})"
        assert params == {"n_k0": "app"}

    def test_node_with_tags_and_properties(self):
        """Tags become extra labels and properties are set as a map."""
        query, params = serialize(MergeNode.of(FUNC, ("app",), calls="[]", code="/out/run.js"))

        assert query == (
            "MERGE (n:`Function` {`name`: $n_k0, `path`: $n_k1})\n"
            "SET n:`app`\n"
            "SET n += $props"
        )
        assert params == {
            "n_k0": "run",
            "n_k1": "/p/app.js",
            "props": {"calls": "[]", "code": "/out/run.js"},
        }

    def test_edge(self):
        """Edges match both endpoints before merging the relationship."""
        query, params = serialize(MergeEdge.of(FUNC, "calls", SYM, chain="console.log"))

        assert query == (
            "MATCH (a:`Function` {`name`: $a_k0, `path`: $a_k1})\n"
            "MATCH (b:`Symbol` {`name`: $b_k0, `path`: $b_k1})\n"
            "MERGE (a)-[r:`calls` {`chain`: $r_p0}]->(b)\n"
            "RETURN count(r) AS merged"
        )
        assert params["r_p0"] == "console.log"
        assert params["b_k0"] == "log"

    def test_edge_without_properties(self):
        query, _ = serialize(MergeEdge.of(SYM, "calls", SYM))

        assert "MERGE (a)-[r:`calls`]->(b)" in query

    def test_values_never_inlined(self):
        """Hostile names stay in parameters, out of the query text."""
        hostile = NodeRef.of("file", name="x'}) DETACH DELETE n //")
        query, params = serialize(MergeNode.of(hostile))

        assert "DETACH" not in query
        assert params["n_k0"] == "x'}) DETACH DELETE n //"

    def test_unknown_operation(self):
        with pytest.raises(TypeError):
            serialize("MERGE (n)")


def test_serialize_all_and_render():
    """render joins statements with their parameters as comments."""
    operations = [MergeNode.of(SYM), MergeEdge.of(FUNC, "calls", SYM)]

    assert len(serialize_all(operations)) == 2
    script = render(operations)
    assert script.count(";\n// {") == 2
    assert "MERGE (n:`Symbol`" in script
