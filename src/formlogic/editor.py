"""
Editing session for a single FormGraph.

FormEditor is the one logical owner of the graph while the author edits
it. Each method delegates to the pure function in `mutations` or
`propagation`, swaps in the returned graph, and hands the structured
result back so the UI layer can show warnings (cleared targets, skipped
answers, start reassignment).

Asynchronous consumers (export jobs, previews) must call snapshot() and
work on the copy instead of holding the live graph.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Sequence, Tuple

import yaml

from formlogic import mutations
from formlogic.model import FormGraph, LogicAction
from formlogic.mutations import IdGenerator, MutationResult, RemovalMode, default_id_generator
from formlogic.propagation import PropagationResult, propagate
from formlogic.resolver import PathResult, Resolution, resolve_next, walk_path
from formlogic.validator import ValidationReport, validate

logger = logging.getLogger(__name__)

PREVIEW = "preview"
EXPORT = "export"


class ConfigError(Exception):
    """Raised when an editor configuration file is invalid."""
    pass


@dataclass
class EditorConfig:
    """
    Author-facing engine settings.

    Properties:
        removal_mode:
            What happens to logic targeting a removed question or end page
        default_answer_count:
            Number of blank answers on a newly inserted question
        block_preview_on_no_terminal:
            Treat "no reachable terminal" as blocking for preview
        block_export_on_no_terminal:
            Treat "no reachable terminal" as blocking for export
    """

    removal_mode: RemovalMode = RemovalMode.CLEAR
    default_answer_count: int = 2
    block_preview_on_no_terminal: bool = False
    block_export_on_no_terminal: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EditorConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ConfigError(f"Unknown editor settings: {', '.join(sorted(unknown))}")

        values = dict(d)
        if "removal_mode" in values:
            try:
                values["removal_mode"] = RemovalMode(values["removal_mode"])
            except ValueError as e:
                raise ConfigError(f"Invalid removal_mode: {values['removal_mode']!r}") from e
        if "default_answer_count" in values:
            count = values["default_answer_count"]
            if not isinstance(count, int) or count < 1:
                raise ConfigError("default_answer_count must be a positive integer")
        return cls(**values)


def load_editor_config(path: str) -> EditorConfig:
    """Read an EditorConfig from a YAML mapping (empty file -> defaults)."""
    with open(path) as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return EditorConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Editor config {path} must be a mapping")
    return EditorConfig.from_dict(data)


class FormEditor:
    """Single-writer editing session around one FormGraph."""

    def __init__(self, graph: Optional[FormGraph] = None, config: Optional[EditorConfig] = None,
                 id_generator: Optional[IdGenerator] = None):
        self.graph = graph if graph is not None else FormGraph()
        self.config = config or EditorConfig()
        self.id_generator = id_generator or default_id_generator
        self.last_result: Optional[MutationResult] = None

    def _commit(self, result: MutationResult) -> MutationResult:
        self.graph = result.graph
        self.last_result = result
        return result

    def snapshot(self) -> FormGraph:
        """Immutable-by-convention copy for asynchronous consumers."""
        return copy.deepcopy(self.graph)

    # -- questions ------------------------------------------------------------

    def add_question(self, at_index: Optional[int] = None, label: str = "",
                     answer_labels: Optional[Sequence[str]] = None) -> MutationResult:
        if answer_labels is None:
            answer_labels = [""] * self.config.default_answer_count
        return self._commit(mutations.insert_question(
            self.graph, at_index, label, answer_labels, id_generator=self.id_generator))

    def remove_question(self, question_id: str) -> MutationResult:
        result = self._commit(mutations.remove_question(self.graph, question_id, self.config.removal_mode))
        for cleared in result.cleared:
            logger.warning("Logic on answer %s no longer routes to removed question %s",
                           cleared.answer_id, cleared.target_id)
        return result

    def move_questions(self, new_order_of_ids: Sequence[str]) -> MutationResult:
        return self._commit(mutations.reorder_questions(self.graph, new_order_of_ids))

    def rename_question(self, question_id: str, label: str) -> MutationResult:
        return self._commit(mutations.update_question_label(self.graph, question_id, label))

    def set_start(self, question_id: str) -> MutationResult:
        return self._commit(mutations.set_start_question(self.graph, question_id))

    # -- answers --------------------------------------------------------------

    def add_answer(self, question_id: str, at_index: Optional[int] = None, label: str = "") -> MutationResult:
        return self._commit(mutations.insert_answer(
            self.graph, question_id, at_index, label, id_generator=self.id_generator))

    def remove_answer(self, question_id: str, answer_id: str) -> MutationResult:
        return self._commit(mutations.remove_answer(self.graph, question_id, answer_id))

    def move_answers(self, question_id: str, new_order_of_ids: Sequence[str]) -> MutationResult:
        return self._commit(mutations.reorder_answers(self.graph, question_id, new_order_of_ids))

    def rename_answer(self, question_id: str, answer_id: str, label: str) -> MutationResult:
        return self._commit(mutations.update_answer_label(self.graph, question_id, answer_id, label))

    def use_answers(self, question_id: str, labels: Sequence[str]) -> MutationResult:
        return self._commit(mutations.replace_answers(
            self.graph, question_id, labels, id_generator=self.id_generator))

    def set_logic(self, question_id: str, answer_id: str, action: Optional[LogicAction],
                  apply_below: bool = False) -> Optional[PropagationResult]:
        """
        Set one answer's logic, optionally copying it to the answers below.

        Both steps are validated before the live graph is replaced, so a
        rejected propagation leaves the session unchanged.

        Returns:
            PropagationResult when apply_below was used with an action, else None
        """
        result = mutations.set_answer_logic(self.graph, question_id, answer_id, action)
        if not apply_below or action is None:
            self._commit(result)
            return None

        propagated = propagate(result.graph, question_id, answer_id, action)
        self._commit(MutationResult(graph=propagated.graph))
        return propagated

    # -- end pages ------------------------------------------------------------

    def add_end_page(self, name: str, **content: Optional[str]) -> MutationResult:
        return self._commit(mutations.add_end_page(
            self.graph, name, id_generator=self.id_generator, **content))

    def remove_end_page(self, end_page_id: str) -> MutationResult:
        return self._commit(mutations.remove_end_page(self.graph, end_page_id, self.config.removal_mode))

    # -- read side ------------------------------------------------------------

    def resolve(self, question_id: str, answer_id: str) -> Resolution:
        return resolve_next(self.graph, question_id, answer_id)

    def preview(self, choices: Dict[str, str]) -> PathResult:
        return walk_path(self.snapshot(), choices)

    def check(self, purpose: str = PREVIEW) -> Tuple[ValidationReport, bool]:
        """
        Validate before preview or export.

        Returns:
            (report, blocked) where blocked applies the configured
            no-terminal policy for the given purpose
        """
        if purpose == PREVIEW:
            strict = self.config.block_preview_on_no_terminal
        elif purpose == EXPORT:
            strict = self.config.block_export_on_no_terminal
        else:
            raise ValueError(f"Unknown purpose: {purpose!r}")

        report = validate(self.graph)
        blocked = report.blocks(strict_cycles=strict)
        if blocked:
            logger.info("%s blocked: %s", purpose, "; ".join(report.warnings))
        return report, blocked
