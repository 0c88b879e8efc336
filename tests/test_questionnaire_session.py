"""
Test Questionnaire Session - answers, required gate, submission payload

Run with: pytest tests/test_questionnaire_session.py
"""

import pytest

from clinic_survey.contracts import LogicRule, MultiValue, Operator, Question, QuestionType
from clinic_survey.core.questionnaire_session import (
    QuestionnaireSession,
    build_payload,
    validate_for_submit,
)
from clinic_survey.results import SubmissionAccepted, SubmissionRejected


def thai_survey():
    """Q1 choice (required), Q2 text shown only when Q1 is 'แย่'"""
    q1 = Question(id="Q1", order=0, type=QuestionType.CHOICE, label="ความพึงพอใจ",
                  options=("ดีมาก", "แย่"), required=True)
    q2 = Question(id="Q2", order=1, type=QuestionType.TEXT, label="ปัญหาที่พบ",
                  logic=LogicRule("Q1", Operator.EQUALS, "แย่"))
    return [q1, q2]


# ========== End-to-end scenario ==========

def test_scenario_empty_answers_blocked():
    session = QuestionnaireSession(thai_survey())

    assert session.visible_question_ids() == ["Q1"]

    result = session.submit()
    assert isinstance(result, SubmissionRejected)
    assert result.question_id == "Q1"
    assert not session.submitted


def test_scenario_good_answer_hides_follow_up():
    session = QuestionnaireSession(thai_survey())
    session.set_answer("Q1", "ดีมาก")

    assert session.visible_question_ids() == ["Q1"]

    result = session.submit()
    assert isinstance(result, SubmissionAccepted)
    assert result.payload == (("Q1", "ดีมาก"),)


def test_scenario_bad_answer_reveals_follow_up():
    session = QuestionnaireSession(thai_survey())
    session.set_answer("Q1", "แย่")
    session.set_answer("Q2", "เจ็บ")

    assert session.visible_question_ids() == ["Q1", "Q2"]

    result = session.submit()
    assert isinstance(result, SubmissionAccepted)
    assert result.payload == (("Q1", "แย่"), ("Q2", "เจ็บ"))
    assert result.to_rows() == [
        {"question_id": "Q1", "answer_value": "แย่"},
        {"question_id": "Q2", "answer_value": "เจ็บ"},
    ]


# ========== Required gate ==========

def test_hidden_required_question_does_not_block():
    q1 = Question(id="q1", order=0, type=QuestionType.CHOICE, options=("yes", "no"))
    q2 = Question(id="q2", order=1, type=QuestionType.TEXT, required=True,
                  logic=LogicRule("q1", Operator.EQUALS, "yes"))
    session = QuestionnaireSession([q1, q2])
    session.set_answer("q1", "no")

    assert isinstance(session.submit(), SubmissionAccepted)


def test_first_unmet_requirement_reported():
    """Earliest visible violation wins, in display order."""
    questions = [
        Question(id="a", order=0, type=QuestionType.TEXT),
        Question(id="b", order=1, type=QuestionType.TEXT, required=True, label="B"),
        Question(id="c", order=2, type=QuestionType.TEXT, required=True),
    ]
    session = QuestionnaireSession(list(reversed(questions)))

    result = session.submit()
    assert isinstance(result, SubmissionRejected)
    assert result.question_id == "b"
    assert result.question_label == "B"


def test_validate_for_submit_ok():
    questions = [Question(id="a", order=0, type=QuestionType.TEXT, required=True)]
    assert validate_for_submit(questions, {"a": "x"}) is None
    assert validate_for_submit(questions, {"a": ""}) is questions[0]


# ========== Payload ==========

def test_hidden_answers_dropped_from_payload_but_kept_in_session():
    q1 = Question(id="q1", order=0, type=QuestionType.CHOICE, options=("yes", "no"))
    q2 = Question(id="q2", order=1, type=QuestionType.TEXT,
                  logic=LogicRule("q1", Operator.EQUALS, "yes"))
    session = QuestionnaireSession([q1, q2])

    session.set_answer("q1", "yes")
    session.set_answer("q2", "details")
    session.set_answer("q1", "no")

    assert session.answers == {"q1": "no", "q2": "details"}

    result = session.submit()
    assert result.payload == (("q1", "no"),)


def test_hidden_answer_returns_when_revealed_again():
    q1 = Question(id="q1", order=0, type=QuestionType.CHOICE, options=("yes", "no"))
    q2 = Question(id="q2", order=1, type=QuestionType.TEXT,
                  logic=LogicRule("q1", Operator.EQUALS, "yes"))
    session = QuestionnaireSession([q1, q2])

    session.set_answer("q1", "yes")
    session.set_answer("q2", "details")
    session.set_answer("q1", "no")
    session.set_answer("q1", "yes")

    assert session.submit().payload == (("q1", "yes"), ("q2", "details"))


def test_build_payload_skips_empty():
    questions = [Question(id="a", order=0, type=QuestionType.TEXT),
                 Question(id="b", order=1, type=QuestionType.TEXT)]
    assert build_payload(questions, {"a": "", "b": "x"}) == [("b", "x")]


# ========== Lifecycle ==========

def test_double_submit_rejected():
    session = QuestionnaireSession(thai_survey())
    session.set_answer("Q1", "ดีมาก")

    assert isinstance(session.submit(), SubmissionAccepted)

    second = session.submit()
    assert isinstance(second, SubmissionRejected)
    assert second.question_id is None


def test_failed_save_keeps_session_open():
    session = QuestionnaireSession(thai_survey())
    session.set_answer("Q1", "ดีมาก")

    def broken_save(result):
        raise OSError("disk full")

    with pytest.raises(OSError):
        session.submit(save=broken_save)

    assert not session.submitted
    assert isinstance(session.submit(), SubmissionAccepted)


def test_save_called_with_accepted_result():
    session = QuestionnaireSession(thai_survey())
    session.set_answer("Q1", "ดีมาก")
    saved = []

    result = session.submit(save=saved.append)

    assert saved == [result]


def test_duplicate_question_ids_rejected():
    q = Question(id="dup", order=0, type=QuestionType.TEXT)
    with pytest.raises(ValueError, match="Duplicate"):
        QuestionnaireSession([q, Question(id="dup", order=1, type=QuestionType.TEXT)])


def test_unknown_question_rejected():
    session = QuestionnaireSession(thai_survey())
    with pytest.raises(ValueError, match="Unknown question"):
        session.set_answer("nope", "x")


# ========== Editing helpers ==========

def test_toggle_option_and_other():
    cb = Question(id="cb", order=0, type=QuestionType.CHECKBOXES,
                  options=("A", "B"), allow_other=True)
    session = QuestionnaireSession([cb])

    session.toggle_option("cb", "B")
    session.toggle_option("cb", "A")
    assert session.answers["cb"] == "B|||A"

    session.toggle_other("cb")
    assert session.answers["cb"] == "B|||A|||OTHER:"

    session.set_other_text("cb", "extra")
    assert session.get_answer_value("cb") == MultiValue(selected=("B", "A"), other="extra")

    session.toggle_option("cb", "B")
    session.toggle_other("cb")
    assert session.answers["cb"] == "A"


def test_set_other_text_on_choice():
    choice = Question(id="c", order=0, type=QuestionType.CHOICE, options=("x",), allow_other=True)
    session = QuestionnaireSession([choice])

    session.set_other_text("c", "")
    assert session.answers["c"] == "OTHER:"


def test_toggle_option_wrong_type():
    session = QuestionnaireSession(thai_survey())
    with pytest.raises(ValueError):
        session.toggle_option("Q1", "ดีมาก")


def test_clear_answer_and_progress():
    session = QuestionnaireSession(thai_survey())
    assert session.progress() == 0.0

    session.set_answer("Q1", "แย่")
    assert session.progress() == 50.0

    session.clear_answer("Q1")
    assert session.get_answer_value("Q1") is None
    assert session.visible_question_ids() == ["Q1"]


def test_progress_empty_survey():
    assert QuestionnaireSession([]).progress() == 0.0


def test_other_slot_required_for_other_text():
    plain_choice = Question(id="c", order=0, type=QuestionType.CHOICE, options=("x",))
    plain_cb = Question(id="cb", order=1, type=QuestionType.CHECKBOXES, options=("A",))
    dropdown = Question(id="d", order=2, type=QuestionType.DROPDOWN, options=("p",), allow_other=True)
    session = QuestionnaireSession([plain_choice, plain_cb, dropdown])

    with pytest.raises(ValueError, match="no other slot"):
        session.set_other_text("c", "free")
    with pytest.raises(ValueError, match="no other slot"):
        session.set_other_text("cb", "free")
    with pytest.raises(ValueError, match="no other slot"):
        session.toggle_other("cb")
    with pytest.raises(ValueError):
        session.set_other_text("d", "free")

    assert session.answers == {}


def test_console_ignores_other_token_without_slot():
    from main import read_answer

    cb = Question(id="cb", order=0, type=QuestionType.CHECKBOXES, options=("A", "B"))
    session = QuestionnaireSession([cb])

    read_answer(session, cb, "1,0:x")

    assert session.answers["cb"] == "A"
