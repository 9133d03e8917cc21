"""
Logic Resolver: fill-time navigation over a FormGraph.

Given the question a respondent is on and the answer they chose,
compute the next NavigationStep:

    no logic        -> next question by order, or Submitted after the last
    GoToQuestion    -> ToQuestion(target)   (backward jumps / cycles allowed)
    SubmitForm      -> ToEndPage(target)
    CloseForm       -> Closed

IMPORTANT: This module only reads the graph. Failures are RETURNED as
ResolutionError values; nothing is raised to the rendering layer.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from formlogic.model import FormGraph, GoToQuestion, SubmitForm, CloseForm


class NavigationStep(ABC):
    """Resolved outcome of evaluating one answer's logic."""
    pass


@dataclass(frozen=True)
class ToQuestion(NavigationStep):
    question_id: str


@dataclass(frozen=True)
class ToEndPage(NavigationStep):
    end_page_id: str


@dataclass(frozen=True)
class Closed(NavigationStep):
    """The respondent closed the form; nothing is submitted."""
    pass


@dataclass(frozen=True)
class Submitted(NavigationStep):
    """Implicit submission: the last question had no routing logic."""
    pass


class ResolutionErrorKind(Enum):
    DANGLING_TARGET = "dangling_target"
    UNKNOWN_QUESTION = "unknown_question"
    UNKNOWN_ANSWER = "unknown_answer"


@dataclass(frozen=True)
class ResolutionError:
    """
    A resolution failure reported as a value.

    DANGLING_TARGET cannot happen on a well-formed graph, but a stale
    snapshot may still contain one.
    """

    kind: ResolutionErrorKind
    message: str
    question_id: Optional[str] = None
    answer_id: Optional[str] = None
    target_id: Optional[str] = None


Resolution = Union[NavigationStep, ResolutionError]


def is_terminal(step: Resolution) -> bool:
    """True for steps after which no further question is shown."""
    return isinstance(step, (ToEndPage, Closed, Submitted))


def resolve_next(graph: FormGraph, current_question_id: str, chosen_answer_id: str) -> Resolution:
    """
    Compute the next navigational step for a chosen answer.

    Args:
        graph: Form graph (read only)
        current_question_id: Question the respondent is answering
        chosen_answer_id: The single answer they chose

    Returns:
        NavigationStep, or ResolutionError if an id cannot be resolved
    """
    question = graph.get_question(current_question_id)
    if question is None:
        return ResolutionError(
            kind=ResolutionErrorKind.UNKNOWN_QUESTION,
            message=f"Question '{current_question_id}' does not exist",
            question_id=current_question_id,
        )

    answer = question.get_answer(chosen_answer_id)
    if answer is None:
        return ResolutionError(
            kind=ResolutionErrorKind.UNKNOWN_ANSWER,
            message=f"Answer '{chosen_answer_id}' does not belong to question '{current_question_id}'",
            question_id=current_question_id,
            answer_id=chosen_answer_id,
        )

    logic = answer.logic

    if logic is None:
        following = graph.question_at(question.order + 1)
        if following is None:
            return Submitted()
        return ToQuestion(following.id)

    if isinstance(logic, GoToQuestion):
        if graph.get_question(logic.target_question_id) is None:
            return _dangling(question.id, answer.id, logic.target_question_id)
        return ToQuestion(logic.target_question_id)

    if isinstance(logic, SubmitForm):
        if graph.get_end_page(logic.target_end_page_id) is None:
            return _dangling(question.id, answer.id, logic.target_end_page_id)
        return ToEndPage(logic.target_end_page_id)

    if isinstance(logic, CloseForm):
        return Closed()

    return ResolutionError(
        kind=ResolutionErrorKind.DANGLING_TARGET,
        message=f"Unsupported logic action {type(logic).__name__}",
        question_id=question.id,
        answer_id=answer.id,
    )


def _dangling(question_id: str, answer_id: str, target_id: str) -> ResolutionError:
    return ResolutionError(
        kind=ResolutionErrorKind.DANGLING_TARGET,
        message=f"Answer '{answer_id}' targets '{target_id}', which no longer exists",
        question_id=question_id,
        answer_id=answer_id,
        target_id=target_id,
    )


# =============================================================================
# PREVIEW WALK
# =============================================================================


@dataclass
class PathResult:
    """
    Outcome of walking a form with a fixed set of choices.

    Properties:
        visited: Question ids in the order they were shown
        final_step: Last resolution (terminal step, error, or None if stopped)
        stopped_at: Question with no recorded choice, if the walk stopped there
        loop_detected: True when max_steps ran out (routing cycle)
    """

    visited: List[str] = field(default_factory=list)
    final_step: Optional[Resolution] = None
    stopped_at: Optional[str] = None
    loop_detected: bool = False


def walk_path(graph: FormGraph, choices: Dict[str, str], max_steps: Optional[int] = None) -> PathResult:
    """
    Simulate a respondent for preview.

    Starting at the start question, resolve one step per question using
    choices[question_id]. Stops on a terminal step, a resolution error,
    a question without a recorded choice, or after max_steps resolutions.
    """
    result = PathResult()
    if max_steps is None:
        max_steps = 2 * len(graph.questions) + 1

    current = graph.start_question_id
    if current is None:
        if not graph.questions:
            result.final_step = Submitted()
        return result

    for _ in range(max_steps):
        result.visited.append(current)
        chosen = choices.get(current)
        if chosen is None:
            result.stopped_at = current
            return result

        step = resolve_next(graph, current, chosen)
        result.final_step = step
        if not isinstance(step, ToQuestion):
            return result
        current = step.question_id

    result.loop_detected = True
    return result
