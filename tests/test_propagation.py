"""
Tests for the Bulk Logic Propagator ("apply to all answers below").
"""

import copy

import pytest
from formlogic.model import Answer, CloseForm, EndPage, FormGraph, GoToQuestion, Question, SubmitForm
from formlogic.mutations import InvalidTargetError, NodeNotFoundError, set_answer_logic
from formlogic.propagation import propagate


def build_graph() -> FormGraph:
    """Q0 with answers A0..A3, Q1 with one answer, end pages X and Y."""
    return FormGraph(
        questions=[
            Question(id="Q0", order=0, answers=[Answer(id=f"A{j}", order=j) for j in range(4)]),
            Question(id="Q1", order=1, answers=[Answer(id="B0")]),
        ],
        end_pages=[EndPage(id="X", name="X"), EndPage(id="Y", name="Y")],
        start_question_id="Q0",
    )


def logic_of(graph, answer_id):
    return graph.get_question("Q0").get_answer(answer_id).logic


class TestPropagate:

    def test_applies_to_all_answers_below(self):
        result = propagate(build_graph(), "Q0", "A0", SubmitForm("Y"))
        assert result.applied == 3
        assert result.skipped == []
        for answer_id in ("A1", "A2", "A3"):
            assert logic_of(result.graph, answer_id) == SubmitForm("Y")

    def test_source_answer_is_not_changed(self):
        result = propagate(build_graph(), "Q0", "A0", SubmitForm("Y"))
        assert logic_of(result.graph, "A0") is None

    def test_existing_logic_is_skipped(self):
        graph = build_graph()
        graph = set_answer_logic(graph, "Q0", "A2", SubmitForm("X")).graph

        result = propagate(graph, "Q0", "A0", SubmitForm("Y"))

        assert result.applied == 2
        assert result.skipped == ["A2"]
        assert logic_of(result.graph, "A2") == SubmitForm("X")
        assert logic_of(result.graph, "A1") == SubmitForm("Y")

    def test_three_answer_conflict_example(self):
        graph = FormGraph(
            questions=[Question(id="Q0", answers=[
                Answer(id="A1", order=0),
                Answer(id="A2", order=1, logic=SubmitForm("X")),
                Answer(id="A3", order=2),
            ])],
            end_pages=[EndPage(id="X", name="X"), EndPage(id="Y", name="Y")],
            start_question_id="Q0",
        )
        result = propagate(graph, "Q0", "A1", SubmitForm("Y"))
        assert result.applied == 1
        assert result.skipped == ["A2"]

    def test_source_in_the_middle(self):
        result = propagate(build_graph(), "Q0", "A2", CloseForm())
        assert result.applied == 1
        assert logic_of(result.graph, "A3") == CloseForm()
        assert logic_of(result.graph, "A0") is None
        assert logic_of(result.graph, "A1") is None

    def test_last_answer_has_nothing_below(self):
        result = propagate(build_graph(), "Q0", "A3", CloseForm())
        assert result.applied == 0
        assert result.skipped == []

    def test_below_uses_order_not_list_position(self):
        graph = build_graph()
        graph.get_question("Q0").answers.reverse()
        result = propagate(graph, "Q0", "A1", SubmitForm("X"))
        assert result.applied == 2
        assert logic_of(result.graph, "A0") is None

    def test_each_answer_gets_its_own_action(self):
        result = propagate(build_graph(), "Q0", "A0", GoToQuestion("Q1"))
        assert logic_of(result.graph, "A1") is not logic_of(result.graph, "A2")

        graph = set_answer_logic(result.graph, "Q0", "A1", CloseForm()).graph
        assert logic_of(graph, "A2") == GoToQuestion("Q1")

    def test_input_graph_is_untouched(self):
        graph = build_graph()
        before = copy.deepcopy(graph)
        propagate(graph, "Q0", "A0", SubmitForm("Y"))
        assert graph == before


class TestPropagateErrors:

    def test_invalid_target_applies_nothing(self):
        graph = build_graph()
        before = copy.deepcopy(graph)
        with pytest.raises(InvalidTargetError):
            propagate(graph, "Q0", "A0", SubmitForm("missing"))
        assert graph == before

    def test_missing_action_rejected(self):
        graph = build_graph()
        before = copy.deepcopy(graph)
        with pytest.raises(InvalidTargetError):
            propagate(graph, "Q0", "A0", None)
        assert graph == before

    def test_self_target_rejected(self):
        with pytest.raises(InvalidTargetError):
            propagate(build_graph(), "Q0", "A0", GoToQuestion("Q0"))

    def test_unknown_answer(self):
        with pytest.raises(NodeNotFoundError):
            propagate(build_graph(), "Q0", "B0", CloseForm())

    def test_unknown_question(self):
        with pytest.raises(NodeNotFoundError):
            propagate(build_graph(), "Q9", "A0", CloseForm())
