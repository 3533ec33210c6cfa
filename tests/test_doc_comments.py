"""Tests for doc-comment attachment."""

from jsgraph.scope_builder import build_scope


def test_doc_comment_directly_above(build):
    """A /** */ comment ending on the previous line is attached."""
    scope = build("""
        /**
         * Adds numbers.
         */
        function add(a, b) { return a + b; }
    """)

    assert scope.functions["add"].doc_comment == "/**\n * Adds numbers.\n */"


def test_blank_line_breaks_attachment(build):
    """A blank line between comment and declaration detaches the comment."""
    scope = build("""
        /** Orphan. */

        function add() {}
    """)

    assert scope.functions["add"].doc_comment is None


def test_plain_block_comment_ignored(build):
    """Comments not opening with /** are never doc comments."""
    scope = build("""
        /* not a doc */
        function add() {}
    """)

    assert scope.functions["add"].doc_comment is None


def test_line_comment_between_blocks_doc(build):
    """Only the closest preceding doc comment is considered."""
    scope = build("""
        /** Old doc. */
        // plain note
        function add() {}
    """)

    assert scope.functions["add"].doc_comment is None


def test_closest_doc_comment_wins(build):
    """With two doc comments stacked, the nearer one is attached."""
    scope = build("""
        /** First. */
        /** Second. */
        function add() {}
    """)

    assert scope.functions["add"].doc_comment == "/** Second. */"


def test_export_wrapped_declaration(build):
    """Doc comments above export statements attach to the exported declaration."""
    scope = build("""
        /** Runs it. */
        export function run() {}
    """)

    assert scope.functions["run"].doc_comment == "/** Runs it. */"


def test_method_doc_comment(build):
    """Methods pick up doc comments inside the class body."""
    scope = build("""
        class Shape {
          /** Area in square units. */
          area() { return 0; }

          perimeter() { return 0; }
        }
    """)
    members = scope.classes["Shape"].members

    assert members["area"].doc_comment == "/** Area in square units. */"
    assert members["perimeter"].doc_comment is None


def test_sample_project_docs(provider, sample_project_path):
    """The sample app documents main, App and App.start."""
    path = sample_project_path / "src" / "app.js"
    scope = build_scope(provider.parse(path.read_text(encoding="utf-8"), str(path)))

    assert scope.functions["main"].doc_comment == "/**\n * Application entry point.\n */"
    assert scope.classes["App"].doc_comment == "/** Renders a greeting. */"
    assert scope.classes["App"].members["start"].doc_comment == "/** Boots the application. */"
    assert scope.functions["report"].doc_comment is None
