"""
Data contracts for the clinic survey system.

This module defines the immutable data structures shared by the codec,
the visibility evaluator, the questionnaire session and the persistence
adapter.

Design principles:
- Frozen dataclasses (immutable after creation)
- Live representation only: logic rules reference triggers by id
- Stored (order-based) logic is handled by persistence, never here

Contents:
- QuestionType, Operator: closed vocabularies
- LogicRule: single-condition show rule
- Question: one authored question
- SingleValue, MultiValue, OtherAnnotated: decoded answer variants

Usage:
    from clinic_survey.contracts import Question, LogicRule
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


# Reserved encoding tokens
OTHER_PREFIX = "OTHER:"
MULTI_SEPARATOR = "|||"

# Rating questions have an implicit fixed scale not stored in options
RATING_SCALE = ("1", "2", "3", "4", "5")


class QuestionType(str, Enum):
    TEXT = "text"
    CHOICE = "choice"
    CHECKBOXES = "checkboxes"
    DROPDOWN = "dropdown"
    RATING = "rating"
    DATE = "date"


class Operator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"


# Types that carry an options list
OPTION_TYPES = {QuestionType.CHOICE, QuestionType.CHECKBOXES, QuestionType.DROPDOWN}

# Types that may offer the free-text "other" slot
OTHER_SLOT_TYPES = {QuestionType.CHOICE, QuestionType.CHECKBOXES}


@dataclass(frozen=True)
class LogicRule:
    """
    Show this question only when the trigger's answer satisfies the condition.

    Attributes:
        trigger_question_id: Id of the question whose answer gates visibility
        operator: equals / not_equals
        value: Option string (or "1".."5" for rating triggers)
    """
    trigger_question_id: str
    operator: Operator
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triggerQuestionId": self.trigger_question_id,
            "operator": self.operator.value,
            "value": self.value,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "LogicRule":
        """
        Build a rule from its live dict form.

        Raises:
            ValueError: If operator is unknown or trigger id is missing
        """
        trigger_id = data.get("triggerQuestionId") or data.get("trigger_question_id")
        if not trigger_id:
            raise ValueError("Logic rule missing 'triggerQuestionId'")

        return LogicRule(
            trigger_question_id=str(trigger_id),
            operator=Operator(data.get("operator", Operator.EQUALS.value)),
            value=str(data.get("value", "")),
        )


@dataclass(frozen=True)
class Question:
    """
    One authored question.

    Questions are loaded read-only for a respondent session. `order` is the
    zero-based position in the authored sequence and is the only valid
    "before" relation for logic triggers.
    """
    id: str
    order: int
    type: QuestionType
    label: str = ""
    hint: str = ""
    options: Tuple[str, ...] = ()
    required: bool = False
    allow_other: bool = False
    logic: Optional[LogicRule] = None

    @property
    def has_other_slot(self) -> bool:
        return self.allow_other and self.type in OTHER_SLOT_TYPES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order": self.order,
            "type": self.type.value,
            "label": self.label,
            "hint": self.hint,
            "options": list(self.options),
            "required": self.required,
            "allowOther": self.allow_other,
            "logic": self.logic.to_dict() if self.logic else None,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any], order: Optional[int] = None) -> "Question":
        """
        Build a question from its live dict form.

        Args:
            data: Question dict with id-based logic (if any)
            order: Overrides data['order'] when given (builder lists are
                   ordered by position, not by an explicit field)

        Raises:
            ValueError: If id is missing, or type/operator is unknown
        """
        if "id" not in data:
            raise ValueError("Question missing 'id'")

        q_type = QuestionType(data.get("type", QuestionType.TEXT.value))
        options = tuple(data.get("options") or ()) if q_type in OPTION_TYPES else ()

        # A rule started in the builder but without a trigger yet is no rule
        logic_data = data.get("logic") or {}
        has_trigger = logic_data.get("triggerQuestionId") or logic_data.get("trigger_question_id")
        logic = LogicRule.from_dict(logic_data) if has_trigger else None

        allow_other = data.get("allowOther", data.get("allow_other", False))

        return Question(
            id=str(data["id"]),
            order=int(order if order is not None else data.get("order", 0)),
            type=q_type,
            label=data.get("label") or "",
            hint=data.get("hint") or "",
            options=options,
            required=bool(data.get("required", False)),
            allow_other=bool(allow_other) and q_type in OTHER_SLOT_TYPES,
            logic=logic,
        )


# =============================================================================
# Decoded answer variants
# =============================================================================

@dataclass(frozen=True)
class SingleValue:
    """A plain answer: text, date, rating digit, or a chosen option."""
    value: str


@dataclass(frozen=True)
class OtherAnnotated:
    """The other slot of a choice/dropdown question, with its free text."""
    text: str = ""


@dataclass(frozen=True)
class MultiValue:
    """
    A checkboxes answer.

    Attributes:
        selected: Chosen options, in selection order
        other: Free text of the other slot, or None if it is not selected
    """
    selected: Tuple[str, ...] = field(default_factory=tuple)
    other: Optional[str] = None


Answer = Union[SingleValue, OtherAnnotated, MultiValue]
