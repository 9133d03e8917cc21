"""
Test the sample question presets and the example lead form.

The example form is built only through mutation operations, so it must
come out well-formed and route the way its docstring describes.
"""

import itertools

import pytest
from formlogic.model import FormGraph, GoToQuestion, SubmitForm, is_well_formed
from formlogic.mutations import insert_question
from formlogic.presets import SAMPLE_QUESTIONS, apply_sample_question, build_example_lead_form
from formlogic.resolver import ToEndPage, ToQuestion, resolve_next
from formlogic.validator import validate


def sequential_ids():
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


def test_example_lead_form_structure():
    graph = build_example_lead_form(id_generator=sequential_ids())

    assert is_well_formed(graph).ok
    assert [q.label for q in graph.ordered_questions()] == [
        SAMPLE_QUESTIONS["budget"]["label"],
        SAMPLE_QUESTIONS["timeline"]["label"],
        SAMPLE_QUESTIONS["needs"]["label"],
    ]
    assert [p.name for p in graph.end_pages] == ["Qualified leads", "Not ready yet"]
    assert graph.start_question_id == graph.ordered_questions()[0].id


def test_example_lead_form_routing():
    graph = build_example_lead_form(id_generator=sequential_ids())
    budget, timeline, needs = graph.ordered_questions()
    qualified, nurture = (p.id for p in graph.end_pages)

    budget_answers = budget.ordered_answers()
    assert resolve_next(graph, budget.id, budget_answers[0].id) == ToEndPage(nurture)
    assert resolve_next(graph, budget.id, budget_answers[1].id) == ToQuestion(timeline.id)
    assert budget_answers[-1].logic == GoToQuestion(needs.id)

    assert timeline.ordered_answers()[-1].logic == SubmitForm(nurture)
    assert all(a.logic == SubmitForm(qualified) for a in needs.answers)


def test_example_lead_form_validates_clean():
    report = validate(build_example_lead_form(id_generator=sequential_ids()))
    assert report.is_clean


def test_apply_sample_question():
    ids = sequential_ids()
    result = insert_question(FormGraph(), id_generator=ids)
    graph = apply_sample_question(result.graph, result.created_id, "habits", id_generator=ids)
    question = graph.get_question(result.created_id)
    assert question.label == "How often do you shop for insurance?"
    assert [a.label for a in question.ordered_answers()] == SAMPLE_QUESTIONS["habits"]["answers"]
    assert is_well_formed(graph).ok


def test_unknown_preset():
    result = insert_question(FormGraph())
    with pytest.raises(KeyError):
        apply_sample_question(result.graph, result.created_id, "horoscope")
