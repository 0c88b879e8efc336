"""
Questionnaire Session - one respondent filling in one survey

Responsibilities:
- Hold the read-only question list and the evolving answer map
- Expose the visible questions as a derived, recomputed view
- Gate submission on required questions that are currently visible
- Build the outgoing payload from visible answers only

Design principles:
- Answers are edited one key at a time, by the respondent only
- Hiding a question never clears its stored answer
- Submission is all-or-nothing: validation happens before any write
- No I/O: saving is delegated to a caller-supplied callable
"""

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from clinic_survey.contracts import (
    Answer,
    MultiValue,
    OtherAnnotated,
    Question,
    QuestionType,
)
from clinic_survey.core import answer_codec
from clinic_survey.core.visibility import visible_questions
from clinic_survey.results import SubmissionAccepted, SubmissionRejected
from clinic_survey.utils.helpers import generate_response_id

logger = logging.getLogger(__name__)


def validate_for_submit(visible: Sequence[Question],
                        answers: Mapping[str, str]) -> Optional[Question]:
    """
    Find the first visible required question without an answer.

    Args:
        visible: Visible questions in display order
        answers: question id -> encoded answer

    Returns:
        The earliest unmet required question, or None if submission is ok
    """
    for question in visible:
        if question.required and not answers.get(question.id):
            return question
    return None


def build_payload(visible: Sequence[Question],
                  answers: Mapping[str, str]) -> List[tuple]:
    """(question_id, encoded_answer) for visible questions with a non-empty answer."""
    return [(q.id, answers[q.id]) for q in visible if answers.get(q.id)]


class QuestionnaireSession:
    """
    In-memory state for a single respondent.

    The answer map starts empty. Visibility is never cached: every call to
    visible_questions() re-evaluates all rules against the current answers.
    """

    def __init__(self, questions: Iterable[Question], survey_id: Optional[str] = None):
        """
        Args:
            questions: Survey questions (any order, sorted by `order` here)
            survey_id: Owning survey, carried for logging only

        Raises:
            ValueError: If two questions share an id
        """
        self.questions: List[Question] = sorted(questions, key=lambda q: q.order)
        self.survey_id = survey_id
        self.submitted = False

        self._by_id: Dict[str, Question] = {}
        for question in self.questions:
            if question.id in self._by_id:
                raise ValueError(f"Duplicate question id '{question.id}'")
            self._by_id[question.id] = question

        self._answers: Dict[str, str] = {}

        logger.info(f"Questionnaire session started for survey {survey_id} "
                    f"with {len(self.questions)} questions")

    # =========================================================================
    # Answers
    # =========================================================================

    @property
    def answers(self) -> Dict[str, str]:
        """Copy of the raw answer map (including answers to hidden questions)."""
        return dict(self._answers)

    def get_question(self, question_id: str) -> Question:
        """
        Raises:
            ValueError: If the question id is unknown
        """
        question = self._by_id.get(question_id)
        if question is None:
            raise ValueError(f"Unknown question id '{question_id}'")
        return question

    def set_answer(self, question_id: str, raw: str) -> None:
        """Store an already-encoded answer."""
        self.get_question(question_id)
        self._answers[question_id] = raw
        logger.debug(f"Answer set: {question_id}={raw!r}")

    def set_answer_value(self, question_id: str, answer: Answer) -> None:
        """Encode and store a typed answer."""
        question = self.get_question(question_id)
        self.set_answer(question_id, answer_codec.encode(question, answer))

    def get_answer_value(self, question_id: str) -> Optional[Answer]:
        """Decoded answer, or None if unanswered."""
        question = self.get_question(question_id)
        raw = self._answers.get(question_id)
        if raw is None:
            return None
        return answer_codec.decode(question, raw)

    def clear_answer(self, question_id: str) -> None:
        self.get_question(question_id)
        self._answers.pop(question_id, None)

    def toggle_option(self, question_id: str, option: str) -> None:
        """
        Select or deselect one checkbox option.

        Raises:
            ValueError: If the question is not a checkboxes question
        """
        question = self._require_type(question_id, {QuestionType.CHECKBOXES})
        current = answer_codec.decode(question, self._answers.get(question_id, ""))

        if option in current.selected:
            selected = tuple(s for s in current.selected if s != option)
        else:
            selected = current.selected + (option,)

        self.set_answer_value(question_id, MultiValue(selected=selected, other=current.other))

    def toggle_other(self, question_id: str) -> None:
        """Select or deselect the other slot of a checkboxes question."""
        question = self._require_type(question_id, {QuestionType.CHECKBOXES})
        self._require_other_slot(question)
        current = answer_codec.decode(question, self._answers.get(question_id, ""))
        other = "" if current.other is None else None
        self.set_answer_value(question_id, MultiValue(selected=current.selected, other=other))

    def set_other_text(self, question_id: str, text: str) -> None:
        """
        Select the other slot and set its free text.

        For choice this replaces any chosen option. For checkboxes the other
        segment is added or updated and the options are kept.

        Raises:
            ValueError: If the question does not offer an other slot
        """
        question = self._require_type(
            question_id, {QuestionType.CHOICE, QuestionType.CHECKBOXES}
        )
        self._require_other_slot(question)
        if question.type == QuestionType.CHECKBOXES:
            current = answer_codec.decode(question, self._answers.get(question_id, ""))
            self.set_answer_value(question_id, MultiValue(selected=current.selected, other=text))
        else:
            self.set_answer_value(question_id, OtherAnnotated(text=text))

    def _require_other_slot(self, question: Question) -> None:
        if not question.has_other_slot:
            raise ValueError(f"Question '{question.id}' has no other slot")

    def _require_type(self, question_id: str, allowed: set) -> Question:
        question = self.get_question(question_id)
        if question.type not in allowed:
            raise ValueError(
                f"Question '{question_id}' is {question.type.value}, "
                f"expected one of {sorted(t.value for t in allowed)}"
            )
        return question

    # =========================================================================
    # Derived views
    # =========================================================================

    def visible_questions(self) -> List[Question]:
        return visible_questions(self.questions, self._answers)

    def visible_question_ids(self) -> List[str]:
        return [q.id for q in self.visible_questions()]

    def progress(self) -> float:
        """Percentage of questions with an answer, over all questions."""
        if not self.questions:
            return 0.0
        return len(self._answers) / len(self.questions) * 100

    def validate_for_submit(self) -> Optional[Question]:
        return validate_for_submit(self.visible_questions(), self._answers)

    # =========================================================================
    # Submission
    # =========================================================================

    def submit(self, save: Optional[Callable[[SubmissionAccepted], object]] = None):
        """
        Validate and finalize the session.

        Args:
            save: Called with the accepted result before the session is
                  marked submitted. If it raises, the session stays open.

        Returns:
            SubmissionAccepted or SubmissionRejected
        """
        if self.submitted:
            return SubmissionRejected(reason="Questionnaire already submitted")

        visible = self.visible_questions()
        missing = validate_for_submit(visible, self._answers)
        if missing is not None:
            logger.info(f"Submission rejected for survey {self.survey_id}: "
                        f"required question '{missing.id}' unanswered")
            return SubmissionRejected(
                reason=f"Required question unanswered: {missing.label or missing.id}",
                question_id=missing.id,
                question_label=missing.label,
            )

        result = SubmissionAccepted(
            response_id=generate_response_id(),
            payload=tuple(build_payload(visible, self._answers)),
        )

        if save is not None:
            save(result)

        self.submitted = True
        logger.info(f"Submission {result.response_id} accepted for survey "
                    f"{self.survey_id} with {len(result.payload)} answers")
        return result
