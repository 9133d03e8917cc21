"""
Graphviz DOT diagram generator for form routing graphs.

Converts a FormGraph into Graphviz DOT format for visualization.

Supports two modes:
    - SIMPLE: Question flow only (no edge labels)
    - DETAILED: Answer labels on every edge

In both modes implicit "next question" edges are dashed, end pages are
drawn as notes, and the SUBMITTED / CLOSED terminals appear only when
some answer leads to them.
"""

from enum import Enum
from typing import Dict, List, Tuple

from formlogic.model import FormGraph, Question, GoToQuestion, SubmitForm, CloseForm

SUBMITTED_NODE = "__submitted__"
CLOSED_NODE = "__closed__"


class DotMode(Enum):
    """Visualization modes for DOT output."""
    SIMPLE = "simple"          # Just question flow
    DETAILED = "detailed"      # Include answer labels


def _escape_dot_string(s: str) -> str:
    """Escape special characters for DOT labels."""
    if not s:
        return '""'
    # Escape backslashes first
    s = s.replace('\\', '\\\\')
    s = s.replace('"', '\\"')
    s = s.replace('\n', '\\n')
    return f'"{s}"'


def _escape_dot_id(identifier: str) -> str:
    """Quote an identifier for DOT (generated ids may start with a digit)."""
    return '"' + identifier.replace('"', '\\"') + '"'


def _edge_targets(graph: FormGraph, question: Question) -> List[Tuple[str, List[str], bool]]:
    """
    Group a question's answers by destination node.

    Returns:
        (destination node id, answer labels, implicit) in first-seen order
    """
    grouped: Dict[Tuple[str, bool], List[str]] = {}
    question_ids = {q.id for q in graph.questions}
    end_page_ids = {p.id for p in graph.end_pages}

    answers = question.ordered_answers()
    if not answers:
        following = graph.question_at(question.order + 1)
        grouped[(following.id if following else SUBMITTED_NODE, True)] = []

    for answer in answers:
        logic = answer.logic
        if logic is None:
            following = graph.question_at(question.order + 1)
            key = (following.id if following else SUBMITTED_NODE, True)
        elif isinstance(logic, GoToQuestion):
            if logic.target_question_id not in question_ids:
                continue
            key = (logic.target_question_id, False)
        elif isinstance(logic, SubmitForm):
            if logic.target_end_page_id not in end_page_ids:
                continue
            key = (logic.target_end_page_id, False)
        elif isinstance(logic, CloseForm):
            key = (CLOSED_NODE, False)
        else:
            continue
        grouped.setdefault(key, []).append(answer.label or answer.id)

    return [(dest, labels, implicit) for (dest, implicit), labels in grouped.items()]


def generate_dot(graph: FormGraph, mode: DotMode = DotMode.SIMPLE) -> str:
    """
    Generate Graphviz DOT format for a form graph.

    Args:
        graph: FormGraph to visualize
        mode: Visualization mode (SIMPLE, DETAILED)

    Returns:
        String containing DOT graph definition
    """
    lines = []

    # Header
    lines.append("digraph form {")
    lines.append("  rankdir=LR;")
    lines.append("  node [shape=box, style=filled, fillcolor=lightblue];")

    # =========================================================================
    # NODES
    # =========================================================================

    lines.append('  START [shape=ellipse, fillcolor=lightgreen, label="START"];')

    for question in graph.ordered_questions():
        label = f"Q{question.order + 1}: {question.label or question.id}"
        lines.append(f"  {_escape_dot_id(question.id)} [label={_escape_dot_string(label)}];")

    for page in graph.end_pages:
        label = f"End: {page.name}"
        lines.append(
            f"  {_escape_dot_id(page.id)} [shape=note, fillcolor=lightyellow, "
            f"label={_escape_dot_string(label)}];"
        )

    # =========================================================================
    # EDGES
    # =========================================================================

    edges = []
    terminals = set()

    if graph.start_question_id and graph.get_question(graph.start_question_id):
        edges.append(f"  START -> {_escape_dot_id(graph.start_question_id)};")

    for question in graph.ordered_questions():
        for dest, labels, implicit in _edge_targets(graph, question):
            if dest in (SUBMITTED_NODE, CLOSED_NODE):
                terminals.add(dest)

            attrs = []
            if implicit:
                attrs.append("style=dashed")
            if mode == DotMode.DETAILED and labels:
                edge_label = ", ".join(labels)
                # Shorten for readability
                if len(edge_label) > 40:
                    edge_label = edge_label[:37] + "..."
                attrs.append(f"label={_escape_dot_string(edge_label)}")

            edge_attr = f" [{', '.join(attrs)}]" if attrs else ""
            edges.append(f"  {_escape_dot_id(question.id)} -> {_escape_dot_id(dest)}{edge_attr};")

    if SUBMITTED_NODE in terminals:
        lines.append(f'  {_escape_dot_id(SUBMITTED_NODE)} [shape=doublecircle, fillcolor=palegreen, label="SUBMITTED"];')
    if CLOSED_NODE in terminals:
        lines.append(f'  {_escape_dot_id(CLOSED_NODE)} [shape=doublecircle, fillcolor=lightpink, label="CLOSED"];')

    lines.extend(edges)

    # Footer
    lines.append("}")

    return "\n".join(lines)


def save_dot_file(graph: FormGraph, filename: str, mode: DotMode = DotMode.SIMPLE) -> None:
    """
    Generate DOT and save to file.

    Args:
        graph: FormGraph to visualize
        filename: Output file path (.dot extension recommended)
        mode: Visualization mode
    """
    dot = generate_dot(graph, mode=mode)
    with open(filename, 'w') as f:
        f.write(dot)


__all__ = ["DotMode", "generate_dot", "save_dot_file"]
