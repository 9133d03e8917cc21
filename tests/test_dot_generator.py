"""
Tests for DOT diagram generator.

These tests verify that form graphs are correctly converted to Graphviz DOT format.

Tests cover:
    - Question, end page and terminal nodes
    - Explicit and implicit (dashed) edges
    - Answer labels in detailed mode
    - Special character escaping
"""

import pytest
from formlogic.model import Answer, CloseForm, EndPage, FormGraph, GoToQuestion, Question, SubmitForm
from formlogic.backends.dot_generator import generate_dot, save_dot_file, DotMode


def build_graph() -> FormGraph:
    return FormGraph(
        questions=[
            Question(id="q1", label="Budget?", order=0, answers=[
                Answer(id="a1", label="Low", order=0, logic=SubmitForm("e1")),
                Answer(id="a2", label="High", order=1),
                Answer(id="a3", label="Unsure", order=2, logic=GoToQuestion("q2")),
            ]),
            Question(id="q2", label="Timeline?", order=1, answers=[
                Answer(id="b1", label="Now", order=0),
                Answer(id="b2", label="Never", order=1, logic=CloseForm()),
            ]),
        ],
        end_pages=[EndPage(id="e1", name="Not ready")],
        start_question_id="q1",
    )


class TestDotBasicStructure:

    def test_empty_graph_generates_valid_dot(self):
        dot = generate_dot(FormGraph())
        assert dot.startswith("digraph form {")
        assert dot.endswith("}")
        assert "START" in dot
        assert "->" not in dot

    def test_questions_and_end_pages_become_nodes(self):
        dot = generate_dot(build_graph())
        assert '"q1" [label="Q1: Budget?"];' in dot
        assert '"q2" [label="Q2: Timeline?"];' in dot
        assert '"e1" [shape=note' in dot
        assert "End: Not ready" in dot

    def test_start_edge(self):
        dot = generate_dot(build_graph())
        assert 'START -> "q1";' in dot

    def test_explicit_edges(self):
        dot = generate_dot(build_graph())
        assert '"q1" -> "e1";' in dot
        assert '"q2" -> "__closed__";' in dot

    def test_implicit_edges_are_dashed(self):
        dot = generate_dot(build_graph())
        # High falls through to q2, Now falls past the last question
        assert '"q1" -> "q2" [style=dashed];' in dot
        assert '"q2" -> "__submitted__" [style=dashed];' in dot
        # Unsure jumps to q2 explicitly
        assert '"q1" -> "q2";' in dot

    def test_terminal_nodes_only_when_used(self):
        graph = build_graph()
        graph.get_question("q2").answers[1].logic = None
        dot = generate_dot(graph)
        assert "CLOSED" not in dot
        assert "SUBMITTED" in dot

    def test_dangling_targets_are_skipped(self):
        graph = build_graph()
        graph.get_question("q1").answers[0].logic = SubmitForm("gone")
        dot = generate_dot(graph)
        assert '"gone"' not in dot


class TestDotModes:

    def test_simple_mode_has_no_edge_labels(self):
        dot = generate_dot(build_graph(), mode=DotMode.SIMPLE)
        assert "label=\"Low\"" not in dot

    def test_detailed_mode_labels_edges_with_answers(self):
        dot = generate_dot(build_graph(), mode=DotMode.DETAILED)
        assert '"q1" -> "e1" [label="Low"];' in dot
        assert '"q2" -> "__closed__" [label="Never"];' in dot
        assert '"q1" -> "q2" [style=dashed, label="High"];' in dot

    def test_answers_with_same_destination_share_an_edge(self):
        graph = FormGraph(
            questions=[Question(id="q", label="Q", answers=[
                Answer(id="a", label="Yes", order=0, logic=CloseForm()),
                Answer(id="b", label="No", order=1, logic=CloseForm()),
            ])],
            start_question_id="q",
        )
        dot = generate_dot(graph, mode=DotMode.DETAILED)
        assert dot.count('"q" -> "__closed__"') == 1
        assert 'label="Yes, No"' in dot

    def test_long_labels_are_shortened(self):
        graph = FormGraph(
            questions=[Question(id="q", label="Q", answers=[Answer(id="a", label="x" * 60)])],
            start_question_id="q",
        )
        dot = generate_dot(graph, mode=DotMode.DETAILED)
        assert "x" * 37 + "..." in dot
        assert "x" * 38 not in dot


class TestDotEscaping:

    @pytest.mark.parametrize("label, expected", [
        ('Say "hi"', 'Say \\"hi\\"'),
        ("Line\nbreak", "Line\\nbreak"),
        ("back\\slash", "back\\\\slash"),
    ])
    def test_labels_are_escaped(self, label, expected):
        graph = FormGraph(
            questions=[Question(id="q", label=label, answers=[Answer(id="a")])],
            start_question_id="q",
        )
        assert expected in generate_dot(graph)

    def test_ids_starting_with_digits_are_quoted(self):
        graph = FormGraph(
            questions=[Question(id="9f3a", label="Q", answers=[Answer(id="a")])],
            start_question_id="9f3a",
        )
        assert 'START -> "9f3a";' in generate_dot(graph)


def test_save_dot_file(tmp_path):
    path = tmp_path / "form.dot"
    save_dot_file(build_graph(), str(path), mode=DotMode.DETAILED)
    assert path.read_text() == generate_dot(build_graph(), mode=DotMode.DETAILED)
