"""
Visibility Evaluator - stateless skip-logic evaluation

Responsibilities:
- Decide whether a single question is currently visible
- Project the ordered list of visible questions

Design principles:
- Stateless: all state comes from the questions and answers parameters
- Deterministic: same input always produces same output
- Pure functions: no side effects, safe to call on every keystroke

Resolution rules:
- No rule: visible
- Trigger not found, or trigger not strictly before the question: visible
  (fail-open, malformed logic never blocks a questionnaire)
- Trigger unanswered: hidden, whatever the operator (fail-closed)
- Trigger answered: compare by trigger type

A trigger's own visibility plays no part. Hidden questions keep their
stored answers, so a rule gated on a hidden-but-answered trigger is still
decided by that stored answer.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from clinic_survey.contracts import Operator, OTHER_PREFIX, Question, QuestionType
from clinic_survey.core.answer_codec import selected_set

logger = logging.getLogger(__name__)


def is_visible(question: Question, all_questions: Sequence[Question],
               answers: Mapping[str, str]) -> bool:
    """
    Decide whether a question is currently visible.

    Args:
        question: Question to evaluate
        all_questions: Every question of the survey
        answers: question id -> encoded answer string

    Returns:
        True if the question should be shown
    """
    logic = question.logic
    if logic is None:
        return True

    trigger = _find_question(all_questions, logic.trigger_question_id)
    if trigger is None:
        logger.warning(
            f"Question '{question.id}' references unknown trigger "
            f"'{logic.trigger_question_id}', treating as always visible"
        )
        return True

    if trigger.order >= question.order:
        logger.warning(
            f"Question '{question.id}' (order {question.order}) has trigger "
            f"'{trigger.id}' (order {trigger.order}) that is not before it, "
            f"treating as always visible"
        )
        return True

    raw = answers.get(trigger.id)

    # Empty string is the encoding of "nothing answered"
    if not raw:
        return False

    if trigger.type == QuestionType.CHECKBOXES:
        matched = logic.value in selected_set(raw)
    else:
        matched = raw == logic.value or raw == OTHER_PREFIX + logic.value

    if logic.operator == Operator.EQUALS:
        return matched
    return not matched


def visible_questions(all_questions: Sequence[Question],
                      answers: Mapping[str, str]) -> List[Question]:
    """
    Ordered sub-sequence of questions that are currently visible.

    Recomputed on every call, never cached.
    """
    ordered = sorted(all_questions, key=lambda q: q.order)
    return [q for q in ordered if is_visible(q, all_questions, answers)]


def visibility_map(all_questions: Sequence[Question],
                   answers: Mapping[str, str]) -> Dict[str, bool]:
    """question id -> visible, for every question."""
    return {q.id: is_visible(q, all_questions, answers) for q in all_questions}


def _find_question(all_questions: Sequence[Question], question_id: str) -> Optional[Question]:
    for q in all_questions:
        if q.id == question_id:
            return q
    return None
