"""
Graph Mutation Engine: structural edits that keep a FormGraph consistent.

Every operation here is a pure function:

    result = insert_answer(graph, "q1")
    graph = result.graph

The input graph is never modified. Each operation works on a deep copy and
returns a MutationResult holding the updated graph and what happened
(created ids, cleared logic targets, start reassignment). On error an
exception derived from FormGraphError is raised and the caller still holds
the untouched input graph, so every mutation is atomic.

After every successful mutation:
    - question orders are dense (0..N-1)
    - answer orders are dense within each question
    - no logic action references a missing question or end page
    - no question routes to itself
    - the start question exists (or is None for an empty graph)
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Set

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

logger = logging.getLogger(__name__)

IdGenerator = Callable[[], str]

_MAX_ID_ATTEMPTS = 16


def default_id_generator() -> str:
    """Random id for new questions, answers and end pages."""
    return uuid.uuid4().hex


# =============================================================================
# ERRORS
# =============================================================================


class FormGraphError(Exception):
    """Base class for rejected graph mutations."""
    pass


class InvalidTargetError(FormGraphError):
    """Raised when logic points at a nonexistent node or at its own question."""

    def __init__(self, message: str, target_id: Optional[str] = None):
        super().__init__(message)
        self.target_id = target_id


class InvalidPermutationError(FormGraphError):
    """Raised when a reorder request is not a permutation of the existing ids."""
    pass


class PreconditionError(FormGraphError):
    """Raised when a structural rule would be violated (e.g. removing the last answer)."""

    def __init__(self, message: str, referencing_answer_ids: Optional[List[str]] = None):
        super().__init__(message)
        self.referencing_answer_ids = referencing_answer_ids or []


class NodeNotFoundError(FormGraphError):
    """Raised when a mutation names a question, answer or end page that does not exist."""

    def __init__(self, message: str, node_id: Optional[str] = None):
        super().__init__(message)
        self.node_id = node_id


# =============================================================================
# RESULTS
# =============================================================================


class RemovalMode(Enum):
    """What to do with logic that targets a node being removed."""
    CLEAR = "clear"    # reset referencing answers to "no logic" and report them
    REJECT = "reject"  # refuse the removal while anything routes to the node


@dataclass(frozen=True)
class ClearedTarget:
    """An answer whose logic was reset because its target was removed."""

    question_id: str
    answer_id: str
    target_id: str


@dataclass
class MutationResult:
    """
    Outcome of a successful mutation.

    Properties:
        graph: The updated graph (a new object)
        created_id: Id of the created question / answer / end page, if any
        cleared: Logic targets cleared as a side effect, for author warnings
        start_question_id_changed: True if the start question was reassigned
    """

    graph: FormGraph
    created_id: Optional[str] = None
    cleared: List[ClearedTarget] = field(default_factory=list)
    start_question_id_changed: bool = False


# =============================================================================
# HELPERS
# =============================================================================


def _require_question(graph: FormGraph, question_id: str) -> Question:
    question = graph.get_question(question_id)
    if question is None:
        raise NodeNotFoundError(f"Question '{question_id}' does not exist", node_id=question_id)
    return question


def _require_answer(question: Question, answer_id: str) -> Answer:
    answer = question.get_answer(answer_id)
    if answer is None:
        raise NodeNotFoundError(
            f"Answer '{answer_id}' does not belong to question '{question.id}'", node_id=answer_id
        )
    return answer


def _check_index(at_index: Optional[int], size: int) -> int:
    if at_index is None:
        return size
    if at_index < 0 or at_index > size:
        raise PreconditionError(f"Insert position {at_index} is outside 0..{size}")
    return at_index


def _renumber_questions(graph: FormGraph, ordered: List[Question]) -> None:
    for idx, question in enumerate(ordered):
        question.order = idx
    graph.questions = ordered


def _renumber_answers(question: Question, ordered: List[Answer]) -> None:
    for idx, answer in enumerate(ordered):
        answer.order = idx
    question.answers = ordered


def _fresh_id(taken: Set[str], id_generator: IdGenerator) -> str:
    for _ in range(_MAX_ID_ATTEMPTS):
        candidate = id_generator()
        if candidate and candidate not in taken:
            taken.add(candidate)
            return candidate
    raise PreconditionError(f"Id generator produced no unused id in {_MAX_ID_ATTEMPTS} attempts")


def _check_permutation(current_ids: List[str], new_order: Sequence[str], what: str) -> None:
    if isinstance(new_order, (str, bytes)):
        raise InvalidPermutationError(f"{what} order must be a sequence of ids, not a string")
    new_ids = list(new_order)
    if len(new_ids) != len(current_ids) or len(set(new_ids)) != len(new_ids) \
            or set(new_ids) != set(current_ids):
        raise InvalidPermutationError(
            f"{what} order {new_ids} is not a permutation of {sorted(current_ids)}"
        )


def check_logic_target(graph: FormGraph, question_id: str, action: Optional[LogicAction]) -> None:
    """
    Verify that a logic action may be attached to an answer of question_id.

    Raises:
        InvalidTargetError: unknown target, or a question routing to itself
    """
    if action is None or isinstance(action, CloseForm):
        return

    if isinstance(action, GoToQuestion):
        target = action.target_question_id
        if target == question_id:
            raise InvalidTargetError(f"Question '{question_id}' cannot route to itself", target_id=target)
        if graph.get_question(target) is None:
            raise InvalidTargetError(f"Target question '{target}' does not exist", target_id=target)
        return

    if isinstance(action, SubmitForm):
        target = action.target_end_page_id
        if graph.get_end_page(target) is None:
            raise InvalidTargetError(f"Target end page '{target}' does not exist", target_id=target)
        return

    raise InvalidTargetError(f"Unsupported logic action {type(action).__name__}")


def _references(graph: FormGraph, matches: Callable[[LogicAction], bool],
                exclude_question_id: Optional[str] = None) -> List[tuple]:
    found = []
    for question in graph.ordered_questions():
        if question.id == exclude_question_id:
            continue
        for answer in question.ordered_answers():
            if answer.logic is not None and matches(answer.logic):
                found.append((question, answer))
    return found


# =============================================================================
# ANSWERS
# =============================================================================


def insert_answer(graph: FormGraph, question_id: str, at_index: Optional[int] = None,
                  label: str = "", id_generator: IdGenerator = default_id_generator) -> MutationResult:
    """
    Insert a new blank answer into a question.

    Args:
        at_index: Position among the question's answers (default: append)
        label: Initial label
        id_generator: Source of the new answer id

    Returns:
        MutationResult with created_id set to the new answer id
    """
    updated = copy.deepcopy(graph)
    question = _require_question(updated, question_id)
    ordered = question.ordered_answers()
    position = _check_index(at_index, len(ordered))

    answer = Answer(id=_fresh_id(set(updated.all_ids()), id_generator), label=label)
    ordered.insert(position, answer)
    _renumber_answers(question, ordered)

    logger.debug("Inserted answer %s into question %s at %d", answer.id, question_id, position)
    return MutationResult(graph=updated, created_id=answer.id)


def remove_answer(graph: FormGraph, question_id: str, answer_id: str) -> MutationResult:
    """
    Remove an answer and renumber the remaining ones.

    Raises:
        PreconditionError: if it is the question's last answer
    """
    updated = copy.deepcopy(graph)
    question = _require_question(updated, question_id)
    answer = _require_answer(question, answer_id)
    if len(question.answers) == 1:
        raise PreconditionError(f"Cannot remove the last answer of question '{question_id}'")

    _renumber_answers(question, [a for a in question.ordered_answers() if a.id != answer.id])

    logger.debug("Removed answer %s from question %s", answer_id, question_id)
    return MutationResult(graph=updated)


def reorder_answers(graph: FormGraph, question_id: str, new_order_of_ids: Sequence[str]) -> MutationResult:
    """
    Reorder a question's answers.

    new_order_of_ids must contain every answer id of the question exactly once.

    Raises:
        InvalidPermutationError: otherwise (nothing is changed)
    """
    updated = copy.deepcopy(graph)
    question = _require_question(updated, question_id)
    _check_permutation([a.id for a in question.answers], new_order_of_ids, "Answer")

    by_id = {a.id: a for a in question.answers}
    _renumber_answers(question, [by_id[a_id] for a_id in new_order_of_ids])
    return MutationResult(graph=updated)


def update_answer_label(graph: FormGraph, question_id: str, answer_id: str, label: str) -> MutationResult:
    updated = copy.deepcopy(graph)
    answer = _require_answer(_require_question(updated, question_id), answer_id)
    answer.label = label
    return MutationResult(graph=updated)


def replace_answers(graph: FormGraph, question_id: str, labels: Sequence[str],
                    id_generator: IdGenerator = default_id_generator) -> MutationResult:
    """
    Replace a question's whole answer set with fresh answers (no logic).

    Used when the author picks a sample question preset.
    """
    if not labels:
        raise PreconditionError("A question must keep at least one answer")

    updated = copy.deepcopy(graph)
    question = _require_question(updated, question_id)
    taken = set(updated.all_ids())
    _renumber_answers(question, [Answer(id=_fresh_id(taken, id_generator), label=label) for label in labels])

    logger.debug("Replaced answers of question %s with %d new answers", question_id, len(labels))
    return MutationResult(graph=updated)


def set_answer_logic(graph: FormGraph, question_id: str, answer_id: str,
                     action: Optional[LogicAction] = None) -> MutationResult:
    """
    Set or clear one answer's logic.

    Args:
        action: GoToQuestion / SubmitForm / CloseForm, or None to clear

    Raises:
        InvalidTargetError: if the target does not exist or is the question itself
    """
    updated = copy.deepcopy(graph)
    question = _require_question(updated, question_id)
    answer = _require_answer(question, answer_id)
    check_logic_target(updated, question_id, action)

    answer.logic = action
    logger.debug("Set logic of answer %s to %r", answer_id, action)
    return MutationResult(graph=updated)


# =============================================================================
# QUESTIONS
# =============================================================================


def insert_question(graph: FormGraph, at_index: Optional[int] = None, label: str = "",
                    answer_labels: Sequence[str] = ("", ""),
                    id_generator: IdGenerator = default_id_generator) -> MutationResult:
    """
    Insert a new question with fresh answers.

    A question needs at least one answer to stay navigable; new questions
    get two blank answers unless answer_labels says otherwise. The first
    question of an empty graph becomes the start question.

    Returns:
        MutationResult with created_id set to the new question id
    """
    if not answer_labels:
        raise PreconditionError("A question must have at least one answer")

    updated = copy.deepcopy(graph)
    ordered = updated.ordered_questions()
    position = _check_index(at_index, len(ordered))

    taken = set(updated.all_ids())
    question = Question(id=_fresh_id(taken, id_generator), label=label)
    _renumber_answers(question, [Answer(id=_fresh_id(taken, id_generator), label=text)
                                 for text in answer_labels])
    ordered.insert(position, question)
    _renumber_questions(updated, ordered)

    result = MutationResult(graph=updated, created_id=question.id)
    if updated.start_question_id is None:
        updated.start_question_id = question.id
        result.start_question_id_changed = True

    logger.debug("Inserted question %s at %d", question.id, position)
    return result


def remove_question(graph: FormGraph, question_id: str, mode: RemovalMode = RemovalMode.CLEAR) -> MutationResult:
    """
    Remove a question and renumber the rest.

    Logic elsewhere that routes to the removed question is either cleared
    (RemovalMode.CLEAR, reported in result.cleared) or blocks the removal
    (RemovalMode.REJECT). Removing the start question moves the start to
    the new first question, or clears it if none remain.

    Raises:
        PreconditionError: in REJECT mode when other answers route here
    """
    updated = copy.deepcopy(graph)
    question = _require_question(updated, question_id)

    refs = _references(
        updated,
        lambda logic: isinstance(logic, GoToQuestion) and logic.target_question_id == question_id,
        exclude_question_id=question_id,
    )
    if refs and mode == RemovalMode.REJECT:
        raise PreconditionError(
            f"Question '{question_id}' is the target of {len(refs)} answer(s)",
            referencing_answer_ids=[a.id for _, a in refs],
        )

    result = MutationResult(graph=updated)
    for owner, answer in refs:
        answer.logic = None
        result.cleared.append(ClearedTarget(question_id=owner.id, answer_id=answer.id, target_id=question_id))

    _renumber_questions(updated, [q for q in updated.ordered_questions() if q.id != question.id])

    if updated.start_question_id == question_id:
        updated.start_question_id = updated.questions[0].id if updated.questions else None
        result.start_question_id_changed = True
        logger.info("Start question moved from %s to %s", question_id, updated.start_question_id)

    if result.cleared:
        logger.info("Removing question %s cleared logic on %d answer(s)", question_id, len(result.cleared))
    logger.debug("Removed question %s", question_id)
    return result


def reorder_questions(graph: FormGraph, new_order_of_ids: Sequence[str]) -> MutationResult:
    """
    Reorder all questions (drag and drop).

    Raises:
        InvalidPermutationError: unless new_order_of_ids is a permutation of the question ids
    """
    updated = copy.deepcopy(graph)
    _check_permutation([q.id for q in updated.questions], new_order_of_ids, "Question")

    by_id = {q.id: q for q in updated.questions}
    _renumber_questions(updated, [by_id[q_id] for q_id in new_order_of_ids])
    return MutationResult(graph=updated)


def update_question_label(graph: FormGraph, question_id: str, label: str) -> MutationResult:
    updated = copy.deepcopy(graph)
    _require_question(updated, question_id).label = label
    return MutationResult(graph=updated)


def set_multiple_responses(graph: FormGraph, question_id: str, allowed: bool) -> MutationResult:
    updated = copy.deepcopy(graph)
    _require_question(updated, question_id).allow_multiple_responses = allowed
    return MutationResult(graph=updated)


def set_start_question(graph: FormGraph, question_id: str) -> MutationResult:
    updated = copy.deepcopy(graph)
    _require_question(updated, question_id)
    changed = updated.start_question_id != question_id
    updated.start_question_id = question_id
    return MutationResult(graph=updated, start_question_id_changed=changed)


# =============================================================================
# END PAGES
# =============================================================================


def add_end_page(graph: FormGraph, name: str, headline: Optional[str] = None, body: Optional[str] = None,
                 cta_label: Optional[str] = None, cta_url: Optional[str] = None,
                 id_generator: IdGenerator = default_id_generator) -> MutationResult:
    """Add an end page; created_id holds its id."""
    updated = copy.deepcopy(graph)
    page = EndPage(
        id=_fresh_id(set(updated.all_ids()), id_generator),
        name=name,
        headline=headline,
        body=body,
        cta_label=cta_label,
        cta_url=cta_url,
    )
    updated.end_pages.append(page)
    logger.debug("Added end page %s (%s)", page.id, name)
    return MutationResult(graph=updated, created_id=page.id)


def remove_end_page(graph: FormGraph, end_page_id: str, mode: RemovalMode = RemovalMode.CLEAR) -> MutationResult:
    """
    Remove an end page.

    SubmitForm actions pointing at it are cleared (CLEAR) or block the
    removal (REJECT), exactly as for remove_question.
    """
    updated = copy.deepcopy(graph)
    if updated.get_end_page(end_page_id) is None:
        raise NodeNotFoundError(f"End page '{end_page_id}' does not exist", node_id=end_page_id)

    refs = _references(
        updated,
        lambda logic: isinstance(logic, SubmitForm) and logic.target_end_page_id == end_page_id,
    )
    if refs and mode == RemovalMode.REJECT:
        raise PreconditionError(
            f"End page '{end_page_id}' is the target of {len(refs)} answer(s)",
            referencing_answer_ids=[a.id for _, a in refs],
        )

    result = MutationResult(graph=updated)
    for owner, answer in refs:
        answer.logic = None
        result.cleared.append(ClearedTarget(question_id=owner.id, answer_id=answer.id, target_id=end_page_id))

    updated.end_pages = [p for p in updated.end_pages if p.id != end_page_id]

    if result.cleared:
        logger.info("Removing end page %s cleared logic on %d answer(s)", end_page_id, len(result.cleared))
    return result
