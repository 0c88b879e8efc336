"""
Survey persistence.

JSON files for survey definitions and append-only JSON files for responses.

Stored logic references its trigger by position:

    {"action": "show", "condition": {"questionOrder": 0, "operator": "equals", "value": "..."}}

Live logic references its trigger by id. This module is the only place the
two are reconciled: id -> order on save, order -> id on load.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from clinic_survey.contracts import LogicRule, Operator, Question
from clinic_survey.results import SubmissionAccepted
from clinic_survey.utils.helpers import generate_response_filename

logger = logging.getLogger(__name__)

DEFAULT_THEME_COLOR = "#0ea5e9"


@dataclass(frozen=True)
class SurveyDefinition:
    """A loaded survey with id-based questions in display order."""
    id: str
    title: str
    questions: List[Question] = field(default_factory=list)
    description: str = ""
    is_active: bool = True
    theme_color: str = DEFAULT_THEME_COLOR
    logo_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "is_active": self.is_active,
            "theme_color": self.theme_color,
            "logo_url": self.logo_url,
            "questions": [q.to_dict() for q in self.questions],
        }


# =============================================================================
# Logic conversion (pure)
# =============================================================================

def to_stored_questions(questions: Sequence[Question]) -> List[Dict[str, Any]]:
    """
    Convert builder questions (display order, id-based logic) to stored rows.

    Questions with a blank label are dropped before positions are assigned.
    A rule is stored only if its trigger survives and comes strictly before
    the dependent question.
    """
    kept = [q for q in questions if q.label.strip()]
    position_of = {q.id: index for index, q in enumerate(kept)}

    rows = []
    for index, question in enumerate(kept):
        stored_logic = None
        if question.logic and question.logic.trigger_question_id:
            trigger_index = position_of.get(question.logic.trigger_question_id)
            if trigger_index is not None and trigger_index < index:
                stored_logic = {
                    "action": "show",
                    "condition": {
                        "questionOrder": trigger_index,
                        "operator": question.logic.operator.value,
                        "value": question.logic.value,
                    },
                }
            else:
                logger.warning(
                    f"Dropping rule on question '{question.id}': trigger "
                    f"'{question.logic.trigger_question_id}' is not an earlier question"
                )

        rows.append({
            "id": question.id,
            "label": question.label,
            "hint": question.hint,
            "type": question.type.value,
            "options": list(question.options),
            "required": question.required,
            "allow_other": question.allow_other,
            "order": index,
            "logic": stored_logic,
        })

    return rows


def from_stored_questions(rows: Sequence[Dict[str, Any]]) -> List[Question]:
    """
    Convert stored rows (order-based logic) to live questions (id-based logic).

    Live orders are renumbered 0..n-1 so they match the positions used by
    `questionOrder`, which is resolved against the rows sorted by `order`. Rules with
    an unknown operator or a position that does not exist are dropped.
    Rules pointing forward are kept; the evaluator fails open on them.
    """
    ordered = sorted(rows, key=lambda r: r.get("order", 0))

    questions = []
    for index, row in enumerate(ordered):
        question = Question.from_dict({**row, "logic": None}, order=index)
        logic = _resolve_stored_logic(row, ordered)
        if logic is not None:
            question = replace(question, logic=logic)
        questions.append(question)

    return questions


def _resolve_stored_logic(row: Dict[str, Any], ordered: Sequence[Dict[str, Any]]) -> Optional[LogicRule]:
    stored = row.get("logic")
    if not stored:
        return None

    condition = stored.get("condition") or {}
    position = condition.get("questionOrder")

    try:
        operator = Operator(condition.get("operator"))
    except ValueError:
        logger.warning(f"Question '{row.get('id')}' has unknown operator "
                       f"{condition.get('operator')!r}, ignoring rule")
        return None

    if not isinstance(position, int) or not 0 <= position < len(ordered):
        logger.warning(f"Question '{row.get('id')}' references missing position "
                       f"{position!r}, ignoring rule")
        return None

    return LogicRule(
        trigger_question_id=str(ordered[position]["id"]),
        operator=operator,
        value=str(condition.get("value", "")),
    )


# =============================================================================
# File storage
# =============================================================================

class SurveyPersistence:
    """
    Manages survey and response JSON files.

    Layout:
        data/surveys/
            <survey_id>.json
        outputs/responses/SURVEY-<survey_id>/
            RESPONSE_20251126_153045_<response_id>.json
            ...

    Design:
    - Surveys are overwritten on save (authoring)
    - Responses are append-only (never overwrite)
    """

    def __init__(self, survey_dir: str = "data/surveys", response_dir: str = "outputs/responses"):
        """
        Initialize persistence layer.

        Args:
            survey_dir: Directory holding survey definition files
            response_dir: Base directory for submitted responses
        """
        self.survey_dir = Path(survey_dir)
        self.response_dir = Path(response_dir)
        self.survey_dir.mkdir(parents=True, exist_ok=True)
        self.response_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"SurveyPersistence initialized: {self.survey_dir}, {self.response_dir}")

    # -------------------------------------------------------------------------
    # Surveys
    # -------------------------------------------------------------------------

    def save_survey(
        self,
        survey_id: str,
        title: str,
        questions: Sequence[Question],
        description: str = "",
        is_active: bool = True,
        theme_color: str = DEFAULT_THEME_COLOR,
        logo_url: Optional[str] = None,
    ) -> str:
        """
        Save a survey built in the editor.

        Returns:
            str: Absolute path to saved file

        Raises:
            ValueError: If the title is blank or no question has a label
        """
        if not title or not title.strip():
            raise ValueError("Survey title is required")

        rows = to_stored_questions(questions)
        if not rows:
            raise ValueError("Survey needs at least one question with a label")

        record = {
            "id": survey_id,
            "title": title,
            "description": description,
            "is_active": is_active,
            "theme_color": theme_color,
            "logo_url": logo_url,
            "questions": rows,
        }

        filepath = self._survey_path(survey_id)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(record, f, indent=2, ensure_ascii=False)

        logger.info(f"Saved survey {survey_id} with {len(rows)} questions: {filepath.name}")
        return str(filepath.absolute())

    def load_survey(self, survey_id: str) -> SurveyDefinition:
        """
        Load a survey with id-based logic.

        Raises:
            FileNotFoundError: If the survey doesn't exist
        """
        filepath = self._survey_path(survey_id)
        if not filepath.exists():
            raise FileNotFoundError(f"Survey not found: {survey_id}")

        with open(filepath, 'r', encoding='utf-8') as f:
            record = json.load(f)

        logger.info(f"Loaded survey {survey_id}: {filepath.name}")
        return survey_from_record(record, default_id=survey_id)

    def survey_exists(self, survey_id: str) -> bool:
        return self._survey_path(survey_id).exists()

    def list_surveys(self) -> List[str]:
        return sorted(p.stem for p in self.survey_dir.glob("*.json"))

    # -------------------------------------------------------------------------
    # Responses
    # -------------------------------------------------------------------------

    def save_response(self, survey_id: str, result: SubmissionAccepted) -> str:
        """
        Save an accepted submission to an append-only file.

        Returns:
            str: Absolute path to saved file

        Raises:
            FileExistsError: If the response file already exists (double-submit)
        """
        survey_responses = self.response_dir / f"SURVEY-{survey_id}"
        survey_responses.mkdir(exist_ok=True)

        filepath = survey_responses / generate_response_filename(result.response_id)
        if filepath.exists():
            raise FileExistsError(
                f"Response file already exists: {filepath}. "
                f"This indicates a double-submit."
            )

        record = {
            "response_id": result.response_id,
            "survey_id": survey_id,
            "submitted_at": datetime.now(timezone.utc).isoformat(),
            "answers": result.to_rows(),
        }

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(record, f, indent=2, ensure_ascii=False)

        logger.info(f"Saved response {result.response_id} for survey {survey_id}: {filepath.name}")
        return str(filepath.absolute())

    def load_responses(self, survey_id: str) -> List[Dict[str, Any]]:
        """All stored responses for a survey, oldest first."""
        survey_responses = self.response_dir / f"SURVEY-{survey_id}"
        if not survey_responses.exists():
            return []

        responses = []
        for path in sorted(survey_responses.glob("RESPONSE_*.json")):
            with open(path, 'r', encoding='utf-8') as f:
                responses.append(json.load(f))
        return responses

    def _survey_path(self, survey_id: str) -> Path:
        if not survey_id or "/" in survey_id or "\\" in survey_id or survey_id.startswith("."):
            raise ValueError(f"Invalid survey id: {survey_id!r}")
        return self.survey_dir / f"{survey_id}.json"


def survey_from_record(record: Dict[str, Any], default_id: str = "") -> SurveyDefinition:
    """Build a SurveyDefinition from a stored survey record."""
    return SurveyDefinition(
        id=str(record.get("id") or default_id),
        title=record.get("title", ""),
        questions=from_stored_questions(record.get("questions", [])),
        description=record.get("description") or "",
        is_active=bool(record.get("is_active", True)),
        theme_color=record.get("theme_color") or DEFAULT_THEME_COLOR,
        logo_url=record.get("logo_url"),
    )
