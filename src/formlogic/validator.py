"""
Graph Validator: whole-graph diagnostics for a FormGraph.

This module provides the checks run before preview and export:
    - Reachability of every question from the start question
    - Logic targets that no longer exist
    - Presence of the start question
    - Whether any terminal state (submission or close) can be reached
    - Multi-select questions carrying per-answer logic
    - Routing cycles (informational)

IMPORTANT: This is read-only. It never modifies the graph and never
raises, whatever shape the graph is in. Findings are report fields;
callers decide which of them block preview or export.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from formlogic.model import FormGraph, GoToQuestion, SubmitForm, CloseForm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DanglingTarget:
    """An answer whose logic references a missing question or end page."""

    question_id: str
    answer_id: str
    target_id: str


@dataclass
class ValidationReport:
    """Validation findings for one graph."""

    # Errors
    dangling_targets: List[DanglingTarget] = field(default_factory=list)
    missing_start: bool = False

    # Warnings
    unreachable_questions: List[str] = field(default_factory=list)
    no_terminal_reachable: bool = False
    multi_select_logic_questions: List[str] = field(default_factory=list)

    # Informational
    cycle_example: Optional[List[str]] = None

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)

    @property
    def has_errors(self) -> bool:
        return bool(self.dangling_targets) or self.missing_start

    @property
    def is_clean(self) -> bool:
        """No errors and nothing the author should be warned about."""
        return not (self.has_errors or self.unreachable_questions
                    or self.no_terminal_reachable or self.multi_select_logic_questions)

    def blocks(self, strict_cycles: bool = False) -> bool:
        """
        Whether the findings should block the caller.

        Errors always block. A graph with no reachable terminal blocks only
        when strict_cycles is set (e.g. for export, not for preview).
        """
        return self.has_errors or (strict_cycles and self.no_terminal_reachable)


def _find_cycles_dfs(graph: Dict[str, List[str]], start: str,
                     visited: Set[str]) -> Optional[List[str]]:
    """
    DFS to find a cycle starting from a node.

    Uses an explicit stack of (node, neighbour iterator) frames so that
    long question chains do not hit the recursion limit.
    """
    visited.add(start)
    path = [start]
    on_path = {start}
    stack = [(start, iter(graph.get(start, [])))]

    while stack:
        node, neighbors = stack[-1]
        for neighbor in neighbors:
            if neighbor in on_path:
                cycle_start_idx = path.index(neighbor)
                return path[cycle_start_idx:] + [neighbor]
            if neighbor not in visited:
                visited.add(neighbor)
                path.append(neighbor)
                on_path.add(neighbor)
                stack.append((neighbor, iter(graph.get(neighbor, []))))
                break
        else:
            stack.pop()
            path.pop()
            on_path.discard(node)

    return None


def validate(graph: FormGraph) -> ValidationReport:
    """
    Validate a FormGraph.

    Reachability follows, from the start question:
        - the implicit next question (when some answer has no logic)
        - every GoToQuestion edge

    A terminal is reached when a visited question has a SubmitForm or
    CloseForm answer, or falls through past the last question.

    Returns a ValidationReport; never raises.
    """
    report = ValidationReport()
    question_ids = {q.id for q in graph.questions}
    end_page_ids = {p.id for p in graph.end_pages}

    # =========================================================================
    # 1. EDGES AND DANGLING TARGETS
    # =========================================================================

    outgoing: Dict[str, List[str]] = {}
    terminal_from: Set[str] = set()

    for question in graph.ordered_questions():
        edges = outgoing.setdefault(question.id, [])
        falls_through = not question.answers
        has_logic = False

        for answer in question.ordered_answers():
            logic = answer.logic
            if logic is None:
                falls_through = True
                continue
            has_logic = True
            if isinstance(logic, GoToQuestion):
                if logic.target_question_id in question_ids:
                    if logic.target_question_id not in edges:
                        edges.append(logic.target_question_id)
                else:
                    report.dangling_targets.append(DanglingTarget(
                        question.id, answer.id, logic.target_question_id))
            elif isinstance(logic, SubmitForm):
                if logic.target_end_page_id in end_page_ids:
                    terminal_from.add(question.id)
                else:
                    report.dangling_targets.append(DanglingTarget(
                        question.id, answer.id, logic.target_end_page_id))
            elif isinstance(logic, CloseForm):
                terminal_from.add(question.id)

        if falls_through:
            following = graph.question_at(question.order + 1)
            if following is None:
                terminal_from.add(question.id)
            elif following.id not in edges:
                edges.append(following.id)

        if has_logic and question.allow_multiple_responses:
            report.multi_select_logic_questions.append(question.id)

    # =========================================================================
    # 2. START AND REACHABILITY (BFS)
    # =========================================================================

    start = graph.start_question_id
    if graph.questions and (start is None or start not in question_ids):
        report.missing_start = True

    reachable: Set[str] = set()
    if not report.missing_start and start is not None:
        queue = deque([start])
        reachable.add(start)
        while queue:
            node = queue.popleft()
            for neighbor in outgoing.get(node, []):
                if neighbor not in reachable:
                    reachable.add(neighbor)
                    queue.append(neighbor)

    report.unreachable_questions = [q.id for q in graph.ordered_questions() if q.id not in reachable]

    if graph.questions:
        report.no_terminal_reachable = not (reachable & terminal_from)

    # =========================================================================
    # 3. CYCLES
    # =========================================================================

    visited: Set[str] = set()
    for question_id in outgoing:
        if question_id not in visited:
            cycle = _find_cycles_dfs(outgoing, question_id, visited)
            if cycle:
                report.cycle_example = cycle
                break

    # =========================================================================
    # 4. WARNINGS
    # =========================================================================

    if report.missing_start:
        report.add_warning("Start question is missing")

    if report.dangling_targets:
        report.add_warning(
            f"Logic targets that no longer exist: "
            f"{', '.join(sorted({d.target_id for d in report.dangling_targets}))}"
        )

    if report.unreachable_questions and not report.missing_start:
        report.add_warning(f"Unreachable questions: {', '.join(report.unreachable_questions)}")

    if report.no_terminal_reachable:
        report.add_warning("No path from the start question ever submits or closes the form")

    if report.multi_select_logic_questions:
        report.add_warning(
            f"Multi-select questions with per-answer logic (routing uses a single answer): "
            f"{', '.join(report.multi_select_logic_questions)}"
        )

    if report.cycle_example:
        report.add_warning(f"Routing cycle: {' -> '.join(report.cycle_example)}")

    logger.debug("Validated graph: %d warning(s)", len(report.warnings))
    return report
