"""
Serialization helpers for FormGraph objects.

Provides lossless JSON/YAML round-trip via intermediate dict representation.
Logic actions use the tagged form shared with the persistence layer:

    {"type": "GO_TO_QUESTION", "next_question_id": "..."}
    {"type": "SUBMIT_FORM", "end_page_id": "..."}
    {"type": "CLOSE_FORM"}
"""
from __future__ import annotations

import json
from typing import Any, Dict

import yaml

from formlogic.model import (
    Answer,
    CloseForm,
    EndPage,
    FormGraph,
    GoToQuestion,
    LogicAction,
    Question,
    SubmitForm,
)

GO_TO_QUESTION = "GO_TO_QUESTION"
SUBMIT_FORM = "SUBMIT_FORM"
CLOSE_FORM = "CLOSE_FORM"


class SerializationError(Exception):
    """Raised when a dict cannot be turned back into graph objects."""
    pass


def logic_to_dict(logic: LogicAction | None) -> Dict[str, Any] | None:
    if logic is None:
        return None
    if isinstance(logic, GoToQuestion):
        return {"type": GO_TO_QUESTION, "next_question_id": logic.target_question_id}
    if isinstance(logic, SubmitForm):
        return {"type": SUBMIT_FORM, "end_page_id": logic.target_end_page_id}
    if isinstance(logic, CloseForm):
        return {"type": CLOSE_FORM}
    raise SerializationError(f"Unsupported LogicAction type: {type(logic)}")


def logic_from_dict(d: Dict[str, Any] | None) -> LogicAction | None:
    if d is None:
        return None
    if not isinstance(d, dict):
        raise SerializationError(f"Logic action must be a mapping, got {type(d).__name__}")
    t = d.get("type")
    try:
        if t == GO_TO_QUESTION:
            return GoToQuestion(d["next_question_id"])
        if t == SUBMIT_FORM:
            return SubmitForm(d["end_page_id"])
    except KeyError as e:
        raise SerializationError(f"Logic action {t} is missing field {e}") from e
    if t == CLOSE_FORM:
        return CloseForm()
    raise SerializationError(f"Unsupported logic action type: {t}")


def answer_to_dict(a: Answer) -> Dict[str, Any]:
    return {"id": a.id, "label": a.label, "order": a.order, "logic": logic_to_dict(a.logic)}


def answer_from_dict(d: Dict[str, Any]) -> Answer:
    return Answer(
        id=d["id"],
        label=d.get("label", ""),
        order=d.get("order", 0),
        logic=logic_from_dict(d.get("logic")),
    )


def question_to_dict(q: Question) -> Dict[str, Any]:
    return {
        "id": q.id,
        "label": q.label,
        "order": q.order,
        "allow_multiple_responses": q.allow_multiple_responses,
        "answers": [answer_to_dict(a) for a in q.ordered_answers()],
    }


def question_from_dict(d: Dict[str, Any]) -> Question:
    return Question(
        id=d["id"],
        label=d.get("label", ""),
        order=d.get("order", 0),
        answers=[answer_from_dict(a) for a in d.get("answers", [])],
        allow_multiple_responses=d.get("allow_multiple_responses", False),
    )


def end_page_to_dict(p: EndPage) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "headline": p.headline,
        "body": p.body,
        "cta_label": p.cta_label,
        "cta_url": p.cta_url,
    }


def end_page_from_dict(d: Dict[str, Any]) -> EndPage:
    return EndPage(
        id=d["id"],
        name=d.get("name", ""),
        headline=d.get("headline"),
        body=d.get("body"),
        cta_label=d.get("cta_label"),
        cta_url=d.get("cta_url"),
    )


def graph_to_dict(g: FormGraph) -> Dict[str, Any]:
    return {
        "start_question_id": g.start_question_id,
        "questions": [question_to_dict(q) for q in g.ordered_questions()],
        "end_pages": [end_page_to_dict(p) for p in g.end_pages],
    }


def graph_from_dict(d: Dict[str, Any]) -> FormGraph:
    if not isinstance(d, dict):
        raise SerializationError(f"Graph document must be a mapping, got {type(d).__name__}")
    try:
        g = FormGraph(start_question_id=d.get("start_question_id"))
        g.questions = [question_from_dict(q) for q in d.get("questions", [])]
        g.end_pages = [end_page_from_dict(p) for p in d.get("end_pages", [])]
    except KeyError as e:
        raise SerializationError(f"Missing required field {e}") from e
    except (AttributeError, TypeError) as e:
        raise SerializationError(f"Malformed graph document: {e}") from e
    return g


def graph_to_json(g: FormGraph) -> str:
    return json.dumps(graph_to_dict(g), sort_keys=True)


def graph_from_json(s: str) -> FormGraph:
    d = json.loads(s)
    return graph_from_dict(d)


def graph_to_yaml(g: FormGraph) -> str:
    return yaml.safe_dump(graph_to_dict(g))


def graph_from_yaml(s: str) -> FormGraph:
    d = yaml.safe_load(s)
    return graph_from_dict(d)
