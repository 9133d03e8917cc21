"""
Tests for serialization and deserialization of FormGraph objects.

These tests ensure lossless JSON/YAML round-trip using the explicit
serialization functions in `formlogic.serialization`, and that logic
actions use the tagged wire form.
"""

import json

import pytest
from formlogic.model import Answer, CloseForm, EndPage, FormGraph, GoToQuestion, Question, SubmitForm
from formlogic.serialization import (
    SerializationError,
    graph_from_dict,
    graph_from_json,
    graph_from_yaml,
    graph_to_dict,
    graph_to_json,
    graph_to_yaml,
    logic_from_dict,
    logic_to_dict,
)


def build_sample_graph() -> FormGraph:
    return FormGraph(
        questions=[
            Question(id="budget", label="What's your budget?", order=0, answers=[
                Answer(id="low", label="Under $1,000", order=0, logic=SubmitForm("nurture")),
                Answer(id="high", label="Over $10,000", order=1),
                Answer(id="unsure", label="I'm not sure yet", order=2, logic=GoToQuestion("needs")),
            ]),
            Question(id="needs", label="What do you need help with?", order=1,
                     allow_multiple_responses=True, answers=[
                         Answer(id="info", label="Product information", order=0, logic=CloseForm()),
                     ]),
        ],
        end_pages=[EndPage(id="nurture", name="Not ready yet", headline="Thanks!", cta_url="https://example.com")],
        start_question_id="budget",
    )


def test_json_roundtrip():
    graph = build_sample_graph()
    restored = graph_from_json(graph_to_json(graph))
    assert restored == graph
    assert graph_to_dict(restored) == graph_to_dict(graph)


def test_yaml_roundtrip():
    graph = build_sample_graph()
    restored = graph_from_yaml(graph_to_yaml(graph))
    assert restored == graph


def test_logic_uses_tagged_form():
    d = json.loads(graph_to_json(build_sample_graph()))
    answers = d["questions"][0]["answers"]
    assert answers[0]["logic"] == {"type": "SUBMIT_FORM", "end_page_id": "nurture"}
    assert answers[1]["logic"] is None
    assert answers[2]["logic"] == {"type": "GO_TO_QUESTION", "next_question_id": "needs"}
    assert d["questions"][1]["answers"][0]["logic"] == {"type": "CLOSE_FORM"}


def test_logic_dict_pairs():
    for action in (GoToQuestion("q"), SubmitForm("e"), CloseForm(), None):
        assert logic_from_dict(logic_to_dict(action)) == action


def test_questions_serialized_in_order():
    graph = build_sample_graph()
    graph.questions.reverse()
    d = graph_to_dict(graph)
    assert [q["id"] for q in d["questions"]] == ["budget", "needs"]


def test_minimal_dict_uses_defaults():
    graph = graph_from_dict({"questions": [{"id": "q", "answers": [{"id": "a"}]}]})
    assert graph.start_question_id is None
    assert graph.questions[0].answers[0].label == ""
    assert graph.questions[0].allow_multiple_responses is False
    assert graph.end_pages == []


@pytest.mark.parametrize("bad", [
    {"type": "JUMP"},
    {"type": "GO_TO_QUESTION"},
    {"type": "SUBMIT_FORM", "next_question_id": "q"},
])
def test_invalid_logic_rejected(bad):
    with pytest.raises(SerializationError):
        logic_from_dict(bad)


def test_missing_id_rejected():
    with pytest.raises(SerializationError):
        graph_from_dict({"questions": [{"label": "no id"}]})


def test_logic_that_is_not_a_mapping_rejected():
    with pytest.raises(SerializationError):
        logic_from_dict("GO_TO_QUESTION")
    with pytest.raises(SerializationError):
        graph_from_dict({"questions": [{"id": "q", "answers": [{"id": "a", "logic": "CLOSE_FORM"}]}]})


@pytest.mark.parametrize("bad", [
    {"questions": ["q"]},
    {"questions": [{"id": "q", "answers": [7]}]},
])
def test_malformed_nodes_rejected(bad):
    with pytest.raises(SerializationError):
        graph_from_dict(bad)


def test_document_that_is_not_a_mapping_rejected():
    with pytest.raises(SerializationError):
        graph_from_json("[1, 2]")
    with pytest.raises(SerializationError):
        graph_from_yaml("- budget\n- timeline\n")
