"""
Logic Authoring Helper - drives the rule builder, not the respondent runtime

Responsibilities:
- List the earlier questions that may act as a trigger
- List the legal comparison values for a chosen trigger
- Report rules that the builder should not have let through
"""

import logging
from typing import List, Sequence

from clinic_survey.contracts import Question, QuestionType, RATING_SCALE

logger = logging.getLogger(__name__)

# Types with a finite, literal answer domain
TRIGGER_TYPES = {
    QuestionType.CHOICE,
    QuestionType.DROPDOWN,
    QuestionType.RATING,
    QuestionType.CHECKBOXES,
}

# Label offered for an option left blank by the author (1-based)
OPTION_PLACEHOLDER = "ตัวเลือก {n}"


def eligible_triggers(all_questions: Sequence[Question], target_order: int) -> List[Question]:
    """
    Questions before `target_order` that can gate visibility.

    Text and date questions are excluded: their free-form values cannot be
    offered as a fixed list of comparison values.
    """
    candidates = [
        q for q in all_questions
        if q.order < target_order and q.type in TRIGGER_TYPES
    ]
    return sorted(candidates, key=lambda q: q.order)


def eligible_values(trigger: Question) -> List[str]:
    """
    Comparison values the builder offers for a trigger.

    Returns:
        "1".."5" for rating, the option list for option types (blank options
        replaced by a positional placeholder), [] for anything else
    """
    if trigger.type == QuestionType.RATING:
        return list(RATING_SCALE)

    if trigger.type not in TRIGGER_TYPES:
        return []

    return [
        option or OPTION_PLACEHOLDER.format(n=i + 1)
        for i, option in enumerate(trigger.options)
    ]


def logic_errors(all_questions: Sequence[Question]) -> List[str]:
    """
    Describe every rule the builder should have prevented.

    Checks:
    - Trigger exists
    - Trigger comes strictly before the dependent question
    - Trigger type has a literal answer domain
    - Rule value is one of the trigger's eligible values

    The evaluator tolerates all of these (it fails open); this is for
    reporting at authoring time only.
    """
    errors = []
    by_id = {q.id: q for q in all_questions}

    for question in sorted(all_questions, key=lambda q: q.order):
        logic = question.logic
        if logic is None:
            continue

        trigger = by_id.get(logic.trigger_question_id)
        if trigger is None:
            errors.append(
                f"Question '{question.id}' references unknown trigger '{logic.trigger_question_id}'"
            )
            continue

        if trigger.order >= question.order:
            errors.append(
                f"Question '{question.id}' has trigger '{trigger.id}' that is not before it"
            )
            continue

        if trigger.type not in TRIGGER_TYPES:
            errors.append(
                f"Question '{question.id}' has trigger '{trigger.id}' of type "
                f"'{trigger.type.value}' which cannot be used in a rule"
            )
            continue

        if logic.value not in eligible_values(trigger):
            errors.append(
                f"Question '{question.id}' compares against {logic.value!r}, "
                f"which is not a value of trigger '{trigger.id}'"
            )

    if errors:
        logger.warning(f"Found {len(errors)} logic rule problem(s)")

    return errors
