"""
Answer Statistics - aggregate submitted responses per question

Counts follow the stored encoding: any "OTHER:" value falls into a single
"other" bucket, checkbox segments are counted one by one, and values outside
a question's domain are ignored.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from clinic_survey.contracts import (
    MULTI_SEPARATOR,
    OTHER_PREFIX,
    Question,
    QuestionType,
    RATING_SCALE,
)
from clinic_survey.core.answer_codec import is_other, split_segments

logger = logging.getLogger(__name__)

OTHER_LABEL = "อื่นๆ"


def aggregate_question(question: Question, raw_values: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Aggregate one question's answers.

    Returns:
        Option types and rating: [{"name": value, "value": count}, ...] in
        domain order, zero-filled
        Text and date: [{"name": raw, "value": 1}, ...] per non-empty answer
    """
    raw_values = [v for v in raw_values if v]

    if question.type in (QuestionType.CHOICE, QuestionType.DROPDOWN):
        counts = _empty_counts(question)
        for raw in raw_values:
            _count(counts, raw, question)
        return _as_rows(counts)

    if question.type == QuestionType.CHECKBOXES:
        counts = _empty_counts(question)
        for raw in raw_values:
            for segment in split_segments(raw):
                _count(counts, segment, question)
        return _as_rows(counts)

    if question.type == QuestionType.RATING:
        counts = {n: 0 for n in RATING_SCALE}
        for raw in raw_values:
            if raw in counts:
                counts[raw] += 1
        return _as_rows(counts)

    return [{"name": raw, "value": 1} for raw in raw_values]


def rating_average(raw_values: Iterable[str]) -> Optional[float]:
    """Mean of valid ratings, None when there are none."""
    scores = [int(v) for v in raw_values if v in RATING_SCALE]
    if not scores:
        return None
    return sum(scores) / len(scores)


def format_answer(raw: str) -> str:
    """Render a stored answer for reports and exports."""
    if is_other(raw):
        raw = raw.replace(OTHER_PREFIX, f"({OTHER_LABEL}) ", 1)
    if MULTI_SEPARATOR in raw:
        raw = ", ".join(raw.split(MULTI_SEPARATOR))
    return raw


def summarize_responses(questions: Sequence[Question],
                        responses: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build per-question statistics over stored responses.

    Args:
        questions: Survey questions
        responses: Stored response records, each with an 'answers' list of
                   {question_id, answer_value}

    Returns:
        {"total_responses": n, "questions": {question_id: {...}}}
    """
    by_question: Dict[str, List[str]] = {q.id: [] for q in questions}
    for response in responses:
        for row in response.get("answers", []):
            values = by_question.get(row.get("question_id"))
            if values is not None:
                values.append(row.get("answer_value", ""))

    summary = {}
    for question in sorted(questions, key=lambda q: q.order):
        values = by_question[question.id]
        entry = {
            "label": question.label,
            "type": question.type.value,
            "answered": len([v for v in values if v]),
            "counts": aggregate_question(question, values),
        }
        if question.type == QuestionType.RATING:
            entry["average"] = rating_average(values)
        summary[question.id] = entry

    logger.info(f"Summarized {len(responses)} responses over {len(questions)} questions")

    return {"total_responses": len(responses), "questions": summary}


def readable_responses(questions: Sequence[Question],
                       responses: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Stored responses with answers rendered for reports.

    Answers are keyed by question id and follow display order; questions the
    respondent did not answer (or did not see) are left out.
    """
    ordered = sorted(questions, key=lambda q: q.order)

    rows = []
    for response in responses:
        values = {a.get("question_id"): a.get("answer_value", "") for a in response.get("answers", [])}
        rows.append({
            "response_id": response.get("response_id"),
            "submitted_at": response.get("submitted_at"),
            "answers": {q.id: format_answer(values[q.id]) for q in ordered if values.get(q.id)},
        })
    return rows


def _empty_counts(question: Question) -> Dict[str, int]:
    counts = {option: 0 for option in question.options}
    if question.has_other_slot:
        counts[OTHER_LABEL] = 0
    return counts


def _count(counts: Dict[str, int], value: str, question: Question) -> None:
    if is_other(value):
        if question.has_other_slot:
            counts[OTHER_LABEL] += 1
    elif value in counts:
        counts[value] += 1


def _as_rows(counts: Dict[str, int]) -> List[Dict[str, Any]]:
    return [{"name": name, "value": value} for name, value in counts.items()]
