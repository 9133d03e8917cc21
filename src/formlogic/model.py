"""
Core Form Graph Objects

Defines the data structures of the conditional branching engine.

These are pure data classes representing:
    - Logic actions (per-answer routing decisions)
    - Answers (selectable options)
    - Questions (graph nodes presenting answers)
    - End pages (terminal nodes)
    - FormGraph (root container)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about rendering, persistence or export
        - Are fully serializable
        - Represent structure, not behavior

    The only behavior here is the shape check `is_well_formed`,
    which never modifies the graph.
"""

from abc import ABC
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class LogicAction(ABC):
    """
    Base class for the routing decision attached to an answer.

    Exactly one concrete case is active per answer:
        - GoToQuestion: jump to another question
        - SubmitForm:   submit and show an end page
        - CloseForm:    abort the form (no target)

    Each case only carries its own target field, so two cases can never
    be populated at the same time.
    """
    pass


@dataclass(frozen=True)
class GoToQuestion(LogicAction):
    """
    Route the respondent to another question.

    The target may come earlier in the form (backward jump) and may
    form a cycle. It must never be the owning question itself.
    """

    target_question_id: str


@dataclass(frozen=True)
class SubmitForm(LogicAction):
    """Submit the form and show the given end page."""

    target_end_page_id: str


@dataclass(frozen=True)
class CloseForm(LogicAction):
    """Close the form without submitting it."""
    pass


@dataclass
class Answer:
    """
    A selectable option on a question.

    Properties:
        id:
            Unique identifier within the graph
        label:
            Text shown to the respondent
        order:
            Position within its question (dense, 0..count-1)
        logic:
            Optional routing decision
            If None: the respondent continues to the next question
    """

    id: str
    label: str = ""
    order: int = 0
    logic: Optional[LogicAction] = None


@dataclass
class Question:
    """
    A node of the form graph presenting one or more answers.

    Properties:
        id:
            Unique identifier within the graph
        label:
            Question text
        order:
            Position in the default (no-logic) sequence (dense, 0..N-1)
        answers:
            Owned answers
        allow_multiple_responses:
            Whether several answers may be chosen at once.
            Routing is only modelled for a single chosen answer.
    """

    id: str
    label: str = ""
    order: int = 0
    answers: List[Answer] = field(default_factory=list)
    allow_multiple_responses: bool = False

    def get_answer(self, answer_id: str) -> Optional[Answer]:
        """
        Retrieve an answer by ID.

        Returns:
            Answer object or None if not found
        """
        for answer in self.answers:
            if answer.id == answer_id:
                return answer
        return None

    def ordered_answers(self) -> List[Answer]:
        """Answers sorted by their order value."""
        return sorted(self.answers, key=lambda a: a.order)


@dataclass
class EndPage:
    """
    A terminal node representing a themed submission outcome.

    Example:
        EndPage(id="qualified", name="End page for leads",
                headline="Thanks!", cta_label="View website",
                cta_url="https://example.com")
    """

    id: str
    name: str
    headline: Optional[str] = None
    body: Optional[str] = None
    cta_label: Optional[str] = None
    cta_url: Optional[str] = None


@dataclass
class FormGraph:
    """
    Root container (aggregate root) of the routing graph.

    This is THE artifact persisted, previewed and exported.

    Properties:
        questions:
            Question nodes, kept sorted by order
        end_pages:
            Terminal end pages
        start_question_id:
            First question shown; None only when there are no questions

    INVARIANTS:
        - Every logic target exists in the graph
        - Question orders and per-question answer orders are dense
        - No question routes to itself
        - start_question_id references an existing question
    """

    questions: List[Question] = field(default_factory=list)
    end_pages: List[EndPage] = field(default_factory=list)
    start_question_id: Optional[str] = None

    def get_question(self, question_id: str) -> Optional[Question]:
        """
        Retrieve a question by ID.

        Args:
            question_id: Question identifier

        Returns:
            Question object or None if not found
        """
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def get_end_page(self, end_page_id: str) -> Optional[EndPage]:
        """
        Retrieve an end page by ID.

        Returns:
            EndPage object or None if not found
        """
        for page in self.end_pages:
            if page.id == end_page_id:
                return page
        return None

    def find_answer(self, answer_id: str) -> Optional[Tuple[Question, Answer]]:
        """Locate an answer anywhere in the graph, with its owning question."""
        for question in self.questions:
            answer = question.get_answer(answer_id)
            if answer is not None:
                return question, answer
        return None

    def question_at(self, order: int) -> Optional[Question]:
        """Question with the given order value, if any."""
        for question in self.questions:
            if question.order == order:
                return question
        return None

    def ordered_questions(self) -> List[Question]:
        """Questions sorted by their order value."""
        return sorted(self.questions, key=lambda q: q.order)

    def all_ids(self) -> List[str]:
        """Every question, answer and end page id (may contain duplicates)."""
        ids = []
        for question in self.questions:
            ids.append(question.id)
            ids.extend(a.id for a in question.answers)
        ids.extend(p.id for p in self.end_pages)
        return ids


# =============================================================================
# SHAPE VALIDATION
# =============================================================================


class ViolationKind(Enum):
    """Kinds of invariant violation reported by is_well_formed."""

    DANGLING_QUESTION_TARGET = "dangling_question_target"
    DANGLING_END_PAGE_TARGET = "dangling_end_page_target"
    QUESTION_ORDER_NOT_DENSE = "question_order_not_dense"
    ANSWER_ORDER_NOT_DENSE = "answer_order_not_dense"
    SELF_LOOP = "self_loop"
    MISSING_START = "missing_start"
    UNKNOWN_START = "unknown_start"
    DUPLICATE_ID = "duplicate_id"


@dataclass(frozen=True)
class InvariantViolation:
    """A single broken invariant, with the ids involved."""

    kind: ViolationKind
    message: str
    question_id: Optional[str] = None
    answer_id: Optional[str] = None
    target_id: Optional[str] = None


@dataclass
class WellFormedness:
    """Result of is_well_formed: ok, or the list of violations."""

    violations: List[InvariantViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


def _is_dense(orders: List[int]) -> bool:
    return sorted(orders) == list(range(len(orders)))


def is_well_formed(graph: FormGraph) -> WellFormedness:
    """
    Check the structural invariants of a graph.

    Checks:
        1. Logic targets reference existing questions / end pages
        2. Question orders and answer orders are dense
        3. No GoToQuestion routes a question to itself
        4. start_question_id is set (when questions exist) and exists
        plus: ids are unique across questions, answers and end pages

    Never modifies the graph.
    """
    result = WellFormedness()
    question_ids = {q.id for q in graph.questions}
    end_page_ids = {p.id for p in graph.end_pages}

    for dup_id, count in Counter(graph.all_ids()).items():
        if count > 1:
            result.violations.append(InvariantViolation(
                kind=ViolationKind.DUPLICATE_ID,
                message=f"Id '{dup_id}' is used {count} times",
                target_id=dup_id,
            ))

    if not _is_dense([q.order for q in graph.questions]):
        result.violations.append(InvariantViolation(
            kind=ViolationKind.QUESTION_ORDER_NOT_DENSE,
            message="Question orders are not a permutation of 0..N-1",
        ))

    for question in graph.questions:
        if not _is_dense([a.order for a in question.answers]):
            result.violations.append(InvariantViolation(
                kind=ViolationKind.ANSWER_ORDER_NOT_DENSE,
                message=f"Answer orders of question '{question.id}' are not dense",
                question_id=question.id,
            ))

        for answer in question.answers:
            logic = answer.logic
            if isinstance(logic, GoToQuestion):
                if logic.target_question_id == question.id:
                    result.violations.append(InvariantViolation(
                        kind=ViolationKind.SELF_LOOP,
                        message=f"Answer '{answer.id}' routes question '{question.id}' to itself",
                        question_id=question.id,
                        answer_id=answer.id,
                        target_id=question.id,
                    ))
                elif logic.target_question_id not in question_ids:
                    result.violations.append(InvariantViolation(
                        kind=ViolationKind.DANGLING_QUESTION_TARGET,
                        message=f"Answer '{answer.id}' targets missing question "
                                f"'{logic.target_question_id}'",
                        question_id=question.id,
                        answer_id=answer.id,
                        target_id=logic.target_question_id,
                    ))
            elif isinstance(logic, SubmitForm):
                if logic.target_end_page_id not in end_page_ids:
                    result.violations.append(InvariantViolation(
                        kind=ViolationKind.DANGLING_END_PAGE_TARGET,
                        message=f"Answer '{answer.id}' targets missing end page "
                                f"'{logic.target_end_page_id}'",
                        question_id=question.id,
                        answer_id=answer.id,
                        target_id=logic.target_end_page_id,
                    ))

    if graph.start_question_id is None:
        if graph.questions:
            result.violations.append(InvariantViolation(
                kind=ViolationKind.MISSING_START,
                message="Graph has questions but no start question",
            ))
    elif graph.start_question_id not in question_ids:
        result.violations.append(InvariantViolation(
            kind=ViolationKind.UNKNOWN_START,
            message=f"Start question '{graph.start_question_id}' does not exist",
            target_id=graph.start_question_id,
        ))

    return result
