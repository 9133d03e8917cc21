"""
Bulk Logic Propagator: "apply this logic to all answers below".

Given a source answer and a logic action, every answer of the same
question with a strictly greater order receives the action, unless it
already has logic of its own.

Conflict policy:
    Existing logic is NEVER overwritten. Such answers are reported in
    `skipped` so the author can be told which answers kept their routing.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import List

from formlogic.model import FormGraph, LogicAction
from formlogic.mutations import InvalidTargetError, NodeNotFoundError, check_logic_target

logger = logging.getLogger(__name__)


@dataclass
class PropagationResult:
    """Updated graph plus how many answers received the action and which were skipped."""

    graph: FormGraph
    applied: int = 0
    skipped: List[str] = field(default_factory=list)


def propagate(graph: FormGraph, question_id: str, source_answer_id: str,
              action: LogicAction) -> PropagationResult:
    """
    Apply `action` to the answers below `source_answer_id`.

    The source may be any answer, not only the first one. Its own logic is
    left untouched. Each receiving answer gets its own copy of the action.

    Raises:
        NodeNotFoundError: unknown question or answer
        InvalidTargetError: no action given, or its target does not exist or is the question itself
    """
    if action is None:
        raise InvalidTargetError("Propagation needs a logic action, got None")
    updated = copy.deepcopy(graph)
    question = updated.get_question(question_id)
    if question is None:
        raise NodeNotFoundError(f"Question '{question_id}' does not exist", node_id=question_id)
    source = question.get_answer(source_answer_id)
    if source is None:
        raise NodeNotFoundError(
            f"Answer '{source_answer_id}' does not belong to question '{question_id}'",
            node_id=source_answer_id,
        )
    check_logic_target(updated, question_id, action)

    result = PropagationResult(graph=updated)
    for answer in question.ordered_answers():
        if answer.order <= source.order:
            continue
        if answer.logic is not None:
            result.skipped.append(answer.id)
            continue
        answer.logic = dataclasses.replace(action)
        result.applied += 1

    if result.skipped:
        logger.info("Propagation on question %s kept existing logic on %d answer(s)",
                    question_id, len(result.skipped))
    logger.debug("Propagated %r to %d answer(s) of question %s", action, result.applied, question_id)
    return result
