"""
Routing table export for a FormGraph.

Produces the "Question,Answer,Next Question" CSV handed to media buyers
alongside the form, one row per answer:

    Question,Answer,Next Question
    What's your budget?,Under $1,000,When do you need this completed?
    What's your budget?,Over $10,000,End: Qualified leads

Next Question column values:
    - label of the target (or implicit next) question, its id if unlabelled
    - "End: <end page name>" for SubmitForm
    - "Close form" for CloseForm
    - "End" for implicit submission after the last question

Questions and answers with a blank label are left out.
"""

import csv
from dataclasses import dataclass
from io import StringIO
from typing import List

from formlogic.model import FormGraph, Question, Answer, GoToQuestion, SubmitForm, CloseForm

HEADER = ["Question", "Answer", "Next Question"]


@dataclass
class RoutingRow:
    """One answer's routing, in author-facing text."""
    question: str
    answer: str
    next_question: str


def _next_label(graph: FormGraph, question: Question, answer: Answer) -> str:
    logic = answer.logic
    if isinstance(logic, GoToQuestion):
        target = graph.get_question(logic.target_question_id)
        return (target.label or target.id) if target is not None else "End"
    if isinstance(logic, SubmitForm):
        page = graph.get_end_page(logic.target_end_page_id)
        return f"End: {page.name}" if page is not None else "End"
    if isinstance(logic, CloseForm):
        return "Close form"

    following = graph.question_at(question.order + 1)
    return (following.label or following.id) if following is not None else "End"


def routing_table_rows(graph: FormGraph) -> List[RoutingRow]:
    """Build one RoutingRow per labelled answer, in form order."""
    rows: List[RoutingRow] = []
    for question in graph.ordered_questions():
        if not question.label.strip():
            continue
        for answer in question.ordered_answers():
            if not answer.label.strip():
                continue
            rows.append(RoutingRow(
                question=question.label,
                answer=answer.label,
                next_question=_next_label(graph, question, answer),
            ))
    return rows


def export_routing_csv(graph: FormGraph) -> str:
    """Render the routing table as CSV text (all fields quoted)."""
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(HEADER)
    for row in routing_table_rows(graph):
        writer.writerow([row.question, row.answer, row.next_question])
    return buffer.getvalue()


def save_routing_csv(graph: FormGraph, filename: str) -> None:
    """
    Write the routing table to a file.

    Args:
        graph: Form graph to export
        filename: Output file path (.csv extension recommended)
    """
    with open(filename, 'w', newline='') as f:
        f.write(export_routing_csv(graph))
