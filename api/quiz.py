import logging
from flask import Blueprint, request, jsonify
from pydantic import ValidationError

import dependencies
from extensions import limiter
from .error_utils import EcoQuizError, error_response_from, handle_exception, validation_error
from .pydantic_models import AnswerRequest

quiz_bp = Blueprint('quiz_bp', __name__)


@quiz_bp.route('/next-question', methods=['GET'])
@quiz_bp.route('/api/create', methods=['GET'])
@limiter.limit("20 per minute")
def next_question():
    """
    Generates ONE quiz question on demand: an AI-drawn waste item, its bin and a justification.
    Stateless; the browser quiz keeps its own score.
    """
    try:
        question = dependencies.get_question_synthesizer().next_question()
        return jsonify(question.to_api()), 200
    except EcoQuizError as e:
        return error_response_from(e, "next-question endpoint")
    except Exception as e:
        return handle_exception(e, "next-question endpoint")


# --- Server-held quiz sessions ---

def _load_question(session, ticket):
    """Runs the synthesizer round trip for `ticket`; a missing provider counts as a failed question."""
    if ticket is None:
        return
    try:
        synthesizer = dependencies.get_question_synthesizer()
    except EcoQuizError as e:
        session.question_failed(e, ticket)
        return
    session.load(synthesizer, ticket)


@quiz_bp.route('/quiz/sessions', methods=['POST'])
@limiter.limit("10 per minute")
def create_session():
    """Starts a session and loads its first question before answering."""
    store = dependencies.get_session_store()
    session_id, session = store.create()
    _load_question(session, session.start())
    logging.info(f"Started quiz session {session_id}")
    return jsonify({"sessionId": session_id, **session.snapshot()}), 201


@quiz_bp.route('/quiz/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    try:
        session = dependencies.get_session_store().get(session_id)
        return jsonify({"sessionId": session_id, **session.snapshot()}), 200
    except EcoQuizError as e:
        return error_response_from(e, "get quiz session")


@quiz_bp.route('/quiz/sessions/<session_id>/answer', methods=['POST'])
def answer_question(session_id):
    try:
        req_data = AnswerRequest.model_validate(request.get_json(silent=True) or {})
        session = dependencies.get_session_store().get(session_id)
        session.answer_question(req_data.option)
        return jsonify({"sessionId": session_id, **session.snapshot()}), 200
    except ValidationError as e:
        return validation_error("Invalid answer payload", {"errors": e.errors(include_url=False)})
    except EcoQuizError as e:
        return error_response_from(e, "answer quiz question")


@quiz_bp.route('/quiz/sessions/<session_id>/continue', methods=['POST'])
@limiter.limit("20 per minute")
def continue_session(session_id):
    """Moves past an answered question: loads the next one, or finishes after the last."""
    try:
        session = dependencies.get_session_store().get(session_id)
        _load_question(session, session.continue_())
        return jsonify({"sessionId": session_id, **session.snapshot()}), 200
    except EcoQuizError as e:
        return error_response_from(e, "continue quiz session")


@quiz_bp.route('/quiz/sessions/<session_id>/finish', methods=['POST'])
def finish_session(session_id):
    try:
        session = dependencies.get_session_store().get(session_id)
        session.finish()
        return jsonify({"sessionId": session_id, **session.snapshot()}), 200
    except EcoQuizError as e:
        return error_response_from(e, "finish quiz session")


@quiz_bp.route('/quiz/sessions/<session_id>', methods=['DELETE'])
def close_session(session_id):
    try:
        dependencies.get_session_store().close(session_id)
        logging.info(f"Closed quiz session {session_id}")
        return '', 204
    except EcoQuizError as e:
        return error_response_from(e, "close quiz session")
