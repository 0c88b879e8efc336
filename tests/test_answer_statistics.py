"""
Test Answer Statistics

Run with: pytest tests/test_answer_statistics.py
"""

from clinic_survey.contracts import Question, QuestionType
from clinic_survey.core.answer_statistics import (
    aggregate_question,
    format_answer,
    rating_average,
    readable_responses,
    summarize_responses,
)


def counts(rows):
    return {row["name"]: row["value"] for row in rows}


def test_choice_counts_with_other_bucket():
    q = Question(id="c", order=0, type=QuestionType.CHOICE, options=("ดีมาก", "แย่"), allow_other=True)

    result = aggregate_question(q, ["ดีมาก", "ดีมาก", "OTHER:เฉยๆ", "unknown", ""])

    assert result == [
        {"name": "ดีมาก", "value": 2},
        {"name": "แย่", "value": 0},
        {"name": "อื่นๆ", "value": 1},
    ]


def test_choice_without_other_ignores_other_values():
    q = Question(id="c", order=0, type=QuestionType.DROPDOWN, options=("a",))
    assert counts(aggregate_question(q, ["OTHER:x", "a"])) == {"a": 1}


def test_checkboxes_count_each_segment():
    q = Question(id="cb", order=0, type=QuestionType.CHECKBOXES, options=("A", "B"), allow_other=True)

    result = counts(aggregate_question(q, ["A|||B", "B|||OTHER:z", "B"]))

    assert result == {"A": 1, "B": 3, "อื่นๆ": 1}


def test_rating_distribution_and_average():
    q = Question(id="r", order=0, type=QuestionType.RATING)
    values = ["5", "4", "5", "9"]

    assert counts(aggregate_question(q, values)) == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 2}
    assert rating_average(values) == 14 / 3
    assert rating_average(["x"]) is None


def test_text_lists_answers():
    q = Question(id="t", order=0, type=QuestionType.TEXT)
    assert aggregate_question(q, ["a", "", "b"]) == [{"name": "a", "value": 1}, {"name": "b", "value": 1}]


def test_format_answer():
    assert format_answer("OTHER:เฉยๆ") == "(อื่นๆ) เฉยๆ"
    assert format_answer("A|||B") == "A, B"
    assert format_answer("plain") == "plain"


def test_summarize_responses():
    questions = [
        Question(id="r", order=0, type=QuestionType.RATING, label="คะแนน"),
        Question(id="t", order=1, type=QuestionType.TEXT),
    ]
    responses = [
        {"answers": [{"question_id": "r", "answer_value": "4"}, {"question_id": "t", "answer_value": "ok"}]},
        {"answers": [{"question_id": "r", "answer_value": "2"}, {"question_id": "ghost", "answer_value": "x"}]},
    ]

    summary = summarize_responses(questions, responses)

    assert summary["total_responses"] == 2
    assert summary["questions"]["r"]["average"] == 3.0
    assert summary["questions"]["r"]["answered"] == 2
    assert summary["questions"]["t"]["answered"] == 1
    assert "average" not in summary["questions"]["t"]


def test_readable_responses_follow_display_order():
    questions = [
        Question(id="cb", order=1, type=QuestionType.CHECKBOXES, options=("A", "B"), allow_other=True),
        Question(id="c", order=0, type=QuestionType.CHOICE, options=("x",), allow_other=True),
        Question(id="t", order=2, type=QuestionType.TEXT),
    ]
    responses = [{
        "response_id": "r1",
        "submitted_at": "2025-02-05T10:00:00+00:00",
        "answers": [
            {"question_id": "cb", "answer_value": "A|||OTHER:z"},
            {"question_id": "c", "answer_value": "OTHER:เฉยๆ"},
        ],
    }]

    rows = readable_responses(questions, responses)

    assert rows[0]["response_id"] == "r1"
    assert list(rows[0]["answers"].items()) == [("c", "(อื่นๆ) เฉยๆ"), ("cb", "A, OTHER:z")]
