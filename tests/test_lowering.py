"""Tests for graph lowering of scope trees."""

import json

import pytest

from jsgraph.errors import LoweringError
from jsgraph.lowering import file_base_name, folder_segments, lower_scope
from jsgraph.models import Descriptor, Scope
from jsgraph.operations import MergeEdge, MergeNode, NodeRef


def _nodes(operations):
    return [op for op in operations if isinstance(op, MergeNode)]


def _edges(operations, kind=None):
    return [op for op in operations if isinstance(op, MergeEdge) and (kind is None or op.kind == kind)]


class TestPathHelpers:
    """Tests for folder and file name derivation."""

    @pytest.mark.parametrize("path,expected", [
        ("/project/src/app.js", ["project", "src"]),
        ("src/lib/format.js", ["src", "lib"]),
        ("/home/me/.config/tool/main.js", ["home", "me", "tool"]),
        ("/my project/src/app.js", ["myproject", "src"]),
        ("app.js", []),
    ])
    def test_folder_segments(self, path, expected):
        """Dotted and blank segments are dropped, whitespace removed."""
        assert folder_segments(path) == expected

    @pytest.mark.parametrize("path,expected", [
        ("/project/src/app.js", "app"),
        ("/project/src/app.test.js", "app"),
        ("Makefile", "Makefile"),
    ])
    def test_file_base_name(self, path, expected):
        """The file name is cut at its first dot."""
        assert file_base_name(path) == expected

    def test_dotfile_has_no_base_name(self):
        """A name starting with a dot cannot name a file node."""
        with pytest.raises(LoweringError):
            file_base_name("/project/.eslintrc.js")


class TestContainment:
    """Tests for the folder/file chain."""

    def test_folder_chain_and_file(self, build, artifact_store):
        """Folders link in order and the last folder contains the file."""
        operations = lower_scope(build(""), artifact_store)

        project = NodeRef.of("folder", name="project")
        src = NodeRef.of("folder", name="src")
        app = NodeRef.of("file", name="app")
        assert operations == [
            MergeNode.of(project),
            MergeNode.of(src),
            MergeEdge.of(project, "folder", src),
            MergeNode.of(app),
            MergeEdge.of(src, "contains", app),
        ]

    def test_file_without_folders(self, build, artifact_store):
        """A bare file name produces only the file node."""
        operations = lower_scope(build("", path="app.js"), artifact_store)

        assert operations == [MergeNode.of(NodeRef.of("file", name="app"))]

    def test_invalid_path(self, artifact_store):
        """Lowering rejects paths without a usable file name."""
        with pytest.raises(LoweringError):
            lower_scope(Scope(source_path="/project/.hidden"), artifact_store)


class TestDeclarations:
    """Tests for Function, Class and Method nodes."""

    def test_top_level_nodes(self, build, artifact_store):
        """Top-level declarations are tagged with the file and contained by it."""
        operations = lower_scope(build("""
            /** Doc. */
            function run() { helper(); }
            class Task {}
        """), artifact_store)

        run = NodeRef.of("Function", name="run", path="/project/src/app.js")
        task = NodeRef.of("Class", name="Task", path="/project/src/app.js")
        file_ref = NodeRef.of("file", name="app")

        run_node = next(op for op in _nodes(operations) if op.node == run)
        assert run_node.tags == ("app",)
        assert json.loads(run_node.properties_dict()["calls"]) == [["helper"]]
        assert run_node.properties_dict()["code"] == artifact_store.code_locator("/project/src/app.js", "run")
        assert run_node.properties_dict()["doc"] == artifact_store.doc_locator("/project/src/app.js", "run")

        task_node = next(op for op in _nodes(operations) if op.node == task)
        assert "doc" not in task_node.properties_dict()
        assert json.loads(task_node.properties_dict()["calls"]) == []

        contains = _edges(operations, "contains")
        assert MergeEdge.of(file_ref, "contains", run) in contains
        assert MergeEdge.of(file_ref, "contains", task) in contains

    def test_functions_before_classes(self, build, artifact_store):
        """Function nodes are merged before class nodes."""
        operations = lower_scope(build("class A {}\nfunction b() {}"), artifact_store)
        labels = [op.node.label for op in _nodes(operations) if op.node.label in ("Function", "Class")]

        assert labels == ["Function", "Class"]

    def test_members_point_at_parent(self, build, artifact_store):
        """Members become Method nodes with a parent edge to their owner."""
        operations = lower_scope(build("""
            class Shape {
              area() {
                const half = () => 0.5;
              }
            }
        """), artifact_store)

        shape = NodeRef.of("Class", name="Shape", path="/project/src/app.js")
        area = NodeRef.of("Method", name="area", path="/project/src/app.js")
        half = NodeRef.of("Method", name="anonymous_function_0", path="/project/src/app.js")

        assert _edges(operations, "parent") == [
            MergeEdge.of(area, "parent", shape),
            MergeEdge.of(half, "parent", area),
        ]
        area_node = next(op for op in _nodes(operations) if op.node == area)
        assert area_node.properties_dict()["code"].endswith("app.js.Shape.area.js")

    def test_nested_function_is_method_node(self, build, artifact_store):
        """Functions nested in functions are lowered as Method nodes."""
        operations = lower_scope(build("function outer() { function inner() {} }"), artifact_store)
        labels = {op.node.key_dict()["name"]: op.node.label for op in _nodes(operations)}

        assert labels["outer"] == "Function"
        assert labels["inner"] == "Method"


class TestCalls:
    """Tests for call edges."""

    def test_call_chain_edges(self, build, artifact_store):
        """A chain links the caller to its last segment and each segment to the next."""
        operations = lower_scope(build("function run() { db.users.find(); }"), artifact_store)

        path = "/project/src/app.js"
        run = NodeRef.of("Function", name="run", path=path)
        db, users, find = (NodeRef.of("Symbol", name=n, path=path) for n in ("db", "users", "find"))

        assert _edges(operations, "calls") == [
            MergeEdge.of(run, "calls", find, chain="db.users.find"),
            MergeEdge.of(db, "calls", users),
            MergeEdge.of(users, "calls", find),
        ]
        assert [op.node for op in _nodes(operations) if op.node.label == "Symbol"] == [db, users, find]

    def test_symbols_merged_before_edges(self, build, artifact_store):
        """Every edge's endpoints are merged earlier in the plan."""
        operations = lower_scope(build("""
            class A {
              go() { this.step().next(); }
            }
            function b() { a.go(); }
        """), artifact_store)

        merged = set()
        for op in operations:
            if isinstance(op, MergeNode):
                merged.add(op.node)
            else:
                assert op.source in merged
                assert op.target in merged

    def test_plan_has_no_duplicates(self, build, artifact_store):
        """Repeated symbols and edges appear once in the plan."""
        operations = lower_scope(build("""
            function a() { log.info(); }
            function b() { log.info(); }
        """), artifact_store)

        assert len(operations) == len(set(operations))
        info = NodeRef.of("Symbol", name="info", path="/project/src/app.js")
        assert sum(1 for op in _nodes(operations) if op.node == info) == 1

    def test_deterministic(self, build, artifact_store):
        """Lowering the same scope twice gives the same plan."""
        scope = build("function a() { x.y(); }\nclass B { c() { z(); } }")

        assert lower_scope(scope, artifact_store) == lower_scope(scope, artifact_store)

    def test_hand_built_scope(self, artifact_store):
        """Lowering works on descriptors built without a parser."""
        scope = Scope(source_path="lib/util.js")
        scope.functions["noop"] = Descriptor(
            name="noop", kind="function", source_path="lib/util.js", raw_code="function noop() {}",
            call_chains=[("console", "log")],
        )
        operations = lower_scope(scope, artifact_store)

        assert MergeNode.of(NodeRef.of("folder", name="lib")) == operations[0]
        assert len(_edges(operations, "calls")) == 2
