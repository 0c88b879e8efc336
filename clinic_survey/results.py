"""
Result types returned by QuestionnaireSession.submit()

These are the ONLY return types from a submission attempt.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class SubmissionAccepted:
    """
    Submission passed the required-field gate.

    Attributes:
        response_id: Identifier generated for this submission
        payload: (question_id, encoded_answer) for every visible question
                 with a non-empty answer, in display order
    """
    response_id: str
    payload: Tuple[Tuple[str, str], ...]

    def to_rows(self) -> List[dict]:
        return [
            {"question_id": question_id, "answer_value": value}
            for question_id, value in self.payload
        ]


@dataclass(frozen=True)
class SubmissionRejected:
    """
    Submission refused, nothing was persisted.

    Examples:
    - A visible required question is unanswered (question_id is set)
    - The session was already submitted (question_id is None)

    Attributes:
        reason: Human-readable explanation
        question_id: First offending question, in display order
        question_label: Label of that question, for error display
    """
    reason: str
    question_id: Optional[str] = None
    question_label: Optional[str] = None
