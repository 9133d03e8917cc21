"""
Sample question presets and an example lead form.

SAMPLE_QUESTIONS mirrors the presets offered in the question editor.
build_example_lead_form() assembles a small qualification form entirely
through mutation operations, so it is well-formed by construction.
"""
from typing import Dict, List

from formlogic.model import FormGraph, GoToQuestion, SubmitForm
from formlogic.mutations import (
    IdGenerator,
    add_end_page,
    default_id_generator,
    insert_question,
    replace_answers,
    set_answer_logic,
    update_question_label,
)
from formlogic.propagation import propagate

SAMPLE_QUESTIONS: Dict[str, Dict] = {
    "budget": {
        "label": "What's your budget?",
        "answers": [
            "Under $1,000",
            "$1,000 - $5,000",
            "$5,000 - $10,000",
            "Over $10,000",
            "I'm not sure yet",
        ],
    },
    "timeline": {
        "label": "When do you need this completed?",
        "answers": [
            "Right away",
            "Within a week",
            "Within a month",
            "Within 3 months",
            "No rush",
        ],
    },
    "needs": {
        "label": "What do you need help with?",
        "answers": [
            "Product information",
            "Pricing details",
            "Technical support",
            "Schedule consultation",
            "Other",
        ],
    },
    "habits": {
        "label": "How often do you shop for insurance?",
        "answers": [
            "Every 6 months",
            "Once a year",
            "Every few years",
            "Only when I need a new plan",
        ],
    },
    "education": {
        "label": "What's your highest level of education?",
        "answers": [
            "High school",
            "Some college",
            "Bachelor's degree",
            "Graduate degree",
            "Prefer not to say",
        ],
    },
}


def apply_sample_question(graph: FormGraph, question_id: str, preset: str,
                          id_generator: IdGenerator = default_id_generator) -> FormGraph:
    """
    Replace a question's label and answers with a sample preset.

    Raises:
        KeyError: unknown preset name
    """
    sample = SAMPLE_QUESTIONS[preset]
    graph = update_question_label(graph, question_id, sample["label"]).graph
    return replace_answers(graph, question_id, sample["answers"], id_generator=id_generator).graph


def build_example_lead_form(id_generator: IdGenerator = default_id_generator) -> FormGraph:
    """
    Budget -> timeline -> needs, with two end pages.

    Routing:
        budget "Under $1,000"   -> end page "Not ready yet"
        budget "I'm not sure yet" -> skip to needs
        timeline "No rush"      -> end page "Not ready yet"
        needs (every answer)    -> end page "Qualified leads"
    """
    graph = FormGraph()
    question_ids: List[str] = []
    for preset in ("budget", "timeline", "needs"):
        result = insert_question(graph, id_generator=id_generator)
        graph = apply_sample_question(result.graph, result.created_id, preset, id_generator=id_generator)
        question_ids.append(result.created_id)

    result = add_end_page(graph, "Qualified leads", headline="Thanks! We'll be in touch.",
                          cta_label="View website", id_generator=id_generator)
    graph, qualified = result.graph, result.created_id
    result = add_end_page(graph, "Not ready yet", headline="Thanks for your interest.",
                          id_generator=id_generator)
    graph, nurture = result.graph, result.created_id

    budget, timeline, needs = (graph.get_question(q_id) for q_id in question_ids)

    graph = set_answer_logic(graph, budget.id, budget.ordered_answers()[0].id, SubmitForm(nurture)).graph
    graph = set_answer_logic(graph, budget.id, budget.ordered_answers()[-1].id, GoToQuestion(needs.id)).graph
    graph = set_answer_logic(graph, timeline.id, timeline.ordered_answers()[-1].id, SubmitForm(nurture)).graph

    first_need = needs.ordered_answers()[0].id
    graph = set_answer_logic(graph, needs.id, first_need, SubmitForm(qualified)).graph
    graph = propagate(graph, needs.id, first_need, SubmitForm(qualified)).graph

    return graph
