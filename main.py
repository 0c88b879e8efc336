"""
Console Test Harness for the Questionnaire Session

Simple console loop to fill in a survey before using the web API.

Usage:
    python main.py data/surveys/clinic_satisfaction.json
"""

import json
import logging
import sys

from clinic_survey.contracts import QuestionType, RATING_SCALE
from clinic_survey.core.questionnaire_session import QuestionnaireSession
from clinic_survey.persistence import survey_from_record
from clinic_survey.results import SubmissionRejected

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_separator(char="=", length=60):
    """Print a separator line"""
    print(char * length)


def prompt_for(question):
    """Build the prompt text for one question"""
    lines = [f"{question.label}{' *' if question.required else ''}"]
    if question.hint:
        lines.append(f"  ({question.hint})")

    if question.type == QuestionType.RATING:
        lines.append(f"  Rate {RATING_SCALE[0]}-{RATING_SCALE[-1]}")
    elif question.options:
        for i, option in enumerate(question.options, start=1):
            lines.append(f"  {i}. {option}")
        if question.has_other_slot:
            lines.append("  0. Other (type 0:<text>)")
        if question.type == QuestionType.CHECKBOXES:
            lines.append("  Several answers: separate numbers with commas")

    return "\n".join(lines)


def read_answer(session, question, user_input):
    """Apply console input to the session (numbers pick options)"""
    if not user_input:
        session.clear_answer(question.id)
        return

    if question.type == QuestionType.CHECKBOXES:
        session.clear_answer(question.id)
        for token in user_input.split(","):
            token = token.strip()
            if token.startswith("0:") and question.has_other_slot:
                session.set_other_text(question.id, token[2:])
            elif token.isdigit() and 0 < int(token) <= len(question.options):
                session.toggle_option(question.id, question.options[int(token) - 1])
        return

    if question.type in (QuestionType.CHOICE, QuestionType.DROPDOWN):
        if user_input.startswith("0:") and question.has_other_slot:
            session.set_other_text(question.id, user_input[2:])
            return
        if user_input.isdigit() and 0 < int(user_input) <= len(question.options):
            session.set_answer(question.id, question.options[int(user_input) - 1])
            return

    session.set_answer(question.id, user_input)


def main():
    """Run console questionnaire"""
    if len(sys.argv) < 2:
        print("Usage: python main.py <survey.json>")
        return 1

    with open(sys.argv[1], 'r', encoding='utf-8') as f:
        survey = survey_from_record(json.load(f))

    session = QuestionnaireSession(survey.questions, survey_id=survey.id)

    print_separator()
    print(survey.title.upper())
    print_separator()
    print("Press Enter to skip, Ctrl+C to stop\n")

    asked = set()

    while True:
        try:
            # Visibility changes after every answer, so re-scan each time
            pending = [q for q in session.visible_questions() if q.id not in asked]

            if not pending:
                result = session.submit()
                if isinstance(result, SubmissionRejected):
                    print(f"\nCannot submit: {result.reason}\n")
                    asked.discard(result.question_id)
                    continue

                print_separator()
                print("SUBMITTED")
                print_separator()
                for question_id, value in result.payload:
                    print(f"  {question_id}: {value}")
                break

            question = pending[0]
            print(prompt_for(question))
            user_input = input("> ").strip()
            read_answer(session, question, user_input)
            asked.add(question.id)
            print()

        except KeyboardInterrupt:
            print("\n\nQuestionnaire interrupted by user (Ctrl+C)")
            break

        except ValueError as e:
            print(f"\nERROR: {e}\n")

    return 0


if __name__ == '__main__':
    sys.exit(main())
