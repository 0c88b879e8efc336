"""
Flask Web Application for the Clinic Survey System

JSON API for the survey builder and the patient-facing questionnaire.
"""

from flask import Flask, request, jsonify
import logging
import os
from werkzeug.exceptions import HTTPException

from clinic_survey.contracts import Question
from clinic_survey.core.questionnaire_session import QuestionnaireSession
from clinic_survey.core.logic_authoring import eligible_triggers, eligible_values, logic_errors
from clinic_survey.core.answer_statistics import readable_responses, summarize_responses
from clinic_survey.persistence import SurveyPersistence
from clinic_survey.results import SubmissionRejected
from clinic_survey.utils.helpers import generate_survey_id, generate_response_id

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get('SURVEY_SECRET_KEY', 'clinic-survey-secret-key')
app.config['SURVEY_DATA_DIR'] = os.environ.get('SURVEY_DATA_DIR', 'data/surveys')
app.config['SURVEY_RESPONSE_DIR'] = os.environ.get('SURVEY_RESPONSE_DIR', 'outputs/responses')

# Active respondent sessions: session_id -> {'survey_id', 'session'}
active_sessions = {}


class SessionNotFound(Exception):
    pass


def get_persistence():
    """Persistence bound to the currently configured directories"""
    return SurveyPersistence(
        survey_dir=app.config['SURVEY_DATA_DIR'],
        response_dir=app.config['SURVEY_RESPONSE_DIR']
    )


def get_session(session_id):
    entry = active_sessions.get(session_id)
    if entry is None:
        raise SessionNotFound(f"No active session: {session_id}")
    return entry


def session_view(session):
    """Visible questions and progress after an answer change"""
    return {
        'visible_question_ids': session.visible_question_ids(),
        'progress': session.progress(),
        'answers': session.answers
    }


def parse_builder_questions(raw_questions):
    """Builder payload lists questions in display order; position is the order"""
    return [Question.from_dict(q, order=index) for index, q in enumerate(raw_questions or [])]


@app.errorhandler(ValueError)
def handle_value_error(e):
    logger.error(f"Bad request: {e}")
    return jsonify({'success': False, 'error': str(e)}), 400


@app.errorhandler(FileNotFoundError)
def handle_not_found(e):
    logger.error(f"Not found: {e}")
    return jsonify({'success': False, 'error': str(e)}), 404


@app.errorhandler(SessionNotFound)
def handle_session_not_found(e):
    logger.error(str(e))
    return jsonify({'success': False, 'error': str(e)}), 404


@app.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    logger.error(f"Unexpected error: {e}", exc_info=True)
    return jsonify({'success': False, 'error': str(e)}), 500


# =============================================================================
# Builder
# =============================================================================

@app.route('/api/surveys', methods=['POST'])
def save_survey():
    """Save a survey from the builder (id-based logic)"""
    data = request.get_json(silent=True) or {}
    questions = parse_builder_questions(data.get('questions'))
    survey_id = data.get('id') or generate_survey_id()

    path = get_persistence().save_survey(
        survey_id=survey_id,
        title=data.get('title', ''),
        questions=questions,
        description=data.get('description', ''),
        is_active=data.get('is_active', True),
        theme_color=data.get('theme_color') or '#0ea5e9',
        logo_url=data.get('logo_url')
    )

    return jsonify({
        'success': True,
        'survey_id': survey_id,
        'path': path,
        'warnings': logic_errors(questions)
    })


@app.route('/api/builder/triggers', methods=['POST'])
def builder_triggers():
    """Earlier questions that may gate the question at target_order"""
    data = request.get_json(silent=True) or {}
    questions = parse_builder_questions(data.get('questions'))
    target_order = int(data.get('target_order', len(questions)))

    return jsonify({
        'success': True,
        'triggers': [
            {'id': q.id, 'order': q.order, 'label': q.label, 'type': q.type.value}
            for q in eligible_triggers(questions, target_order)
        ]
    })


@app.route('/api/builder/values', methods=['POST'])
def builder_values():
    """Comparison values offered for one trigger question"""
    data = request.get_json(silent=True) or {}
    if not data.get('trigger'):
        raise ValueError("Missing 'trigger'")
    trigger = Question.from_dict(data['trigger'])

    return jsonify({'success': True, 'values': eligible_values(trigger)})


# =============================================================================
# Respondent runtime
# =============================================================================

@app.route('/api/surveys/<survey_id>', methods=['GET'])
def get_survey(survey_id):
    survey = get_persistence().load_survey(survey_id)
    return jsonify({'success': True, 'survey': survey.to_dict()})


@app.route('/api/surveys/<survey_id>/sessions', methods=['POST'])
def start_session(survey_id):
    """Start a respondent session on an active survey"""
    survey = get_persistence().load_survey(survey_id)

    if not survey.is_active:
        return jsonify({
            'success': False,
            'error': 'Survey is closed'
        }), 403

    session = QuestionnaireSession(survey.questions, survey_id=survey_id)
    session_id = generate_response_id()
    active_sessions[session_id] = {'survey_id': survey_id, 'session': session}

    logger.info(f"Session {session_id} started for survey {survey_id}")

    return jsonify({
        'success': True,
        'session_id': session_id,
        'survey': survey.to_dict(),
        **session_view(session)
    })


@app.route('/api/sessions/<session_id>/answers', methods=['POST'])
def update_answer(session_id):
    """Set or clear one answer; returns the recomputed visible questions"""
    session = get_session(session_id)['session']
    data = request.get_json(silent=True) or {}

    question_id = data.get('question_id')
    if not question_id:
        raise ValueError("Missing 'question_id'")

    value = data.get('value')
    if value is None:
        session.clear_answer(question_id)
    else:
        session.set_answer(question_id, str(value))

    return jsonify({'success': True, **session_view(session)})


@app.route('/api/sessions/<session_id>/submit', methods=['POST'])
def submit_session(session_id):
    """Validate required visible questions and persist visible answers"""
    entry = get_session(session_id)
    session = entry['session']
    persistence = get_persistence()

    result = session.submit(save=lambda accepted: persistence.save_response(entry['survey_id'], accepted))

    if isinstance(result, SubmissionRejected):
        return jsonify({
            'success': False,
            'error': result.reason,
            'question_id': result.question_id
        }), 400

    active_sessions.pop(session_id, None)

    return jsonify({
        'success': True,
        'response_id': result.response_id,
        'answers': result.to_rows()
    })


# =============================================================================
# Statistics
# =============================================================================

@app.route('/api/surveys/<survey_id>/stats', methods=['GET'])
def survey_stats(survey_id):
    persistence = get_persistence()
    survey = persistence.load_survey(survey_id)
    responses = persistence.load_responses(survey_id)

    return jsonify({
        'success': True,
        'survey_id': survey_id,
        **summarize_responses(survey.questions, responses),
        'responses': readable_responses(survey.questions, responses)
    })


@app.route('/health')
def health():
    return jsonify({'status': 'ok'})


if __name__ == '__main__':
    os.makedirs(app.config['SURVEY_RESPONSE_DIR'], exist_ok=True)

    print("\n" + "="*60)
    print("CLINIC SURVEY SYSTEM - WEB API")
    print("="*60)
    print("\nServer starting...")
    print("API available at: http://localhost:5000/api")
    print("\nPress Ctrl+C to stop the server")
    print("="*60 + "\n")

    app.run(debug=True, host='0.0.0.0', port=5000)
