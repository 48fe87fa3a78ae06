from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from trivia.api import int_field
from trivia.errors import ValidationError
from trivia.security import admin_required, participant_required
from trivia.services.game import get_services

scores = Blueprint('scores', __name__)


@scores.route('/questions/current', methods=['GET'])
@login_required
def current_question():
    """The open question; Round 1 pictures come without their answer key."""
    services = get_services()
    state = services.states.ensure()
    if state.current_round == 2:
        return jsonify(services.questions.round2(state.current_question))
    question = services.questions.round1(state.current_question)
    return jsonify(services.questions.public(question))


@scores.route('/round1/validate', methods=['POST'])
@participant_required
def validate_answer():
    """Check an answer without writing anything; the client accumulates locally."""
    data = request.get_json(silent=True) or {}
    question_id = int_field(data, 'questionId', required=True)
    return jsonify(get_services().scoring.validate_answer(question_id, data.get('answer')))


@scores.route('/round1/answer', methods=['POST'])
@participant_required
def submit_answer():
    data = request.get_json(silent=True) or {}
    question_number = int_field(data, 'questionNumber', required=True)
    round_number = int_field(data, 'roundNumber', default=1)
    result = get_services().scoring.submit_answer(current_user.uid, question_number, data.get('answer'), round_number)
    return jsonify(result), 201


@scores.route('/round1/final', methods=['POST'])
@participant_required
def submit_final_round1_score():
    data = request.get_json(silent=True) or {}
    total = int_field(data, 'totalScore', required=True)
    answers = data.get('answers') or {}
    profile = get_services().scoring.submit_final_round1_score(current_user.uid, total, answers)
    return jsonify({'success': True, 'user': profile.to_dict()})


@scores.route('/leaderboard', methods=['GET'])
@login_required
def leaderboard():
    return jsonify([p.to_dict() for p in get_services().rankings.leaderboard()])


@scores.route('/qualifiers', methods=['GET'])
@admin_required
def qualifiers():
    return jsonify([p.to_dict() for p in get_services().rankings.top_qualifiers()])


@scores.route('/rankings/round1', methods=['POST'])
@admin_required
def calculate_round1_rankings():
    qualified = get_services().rankings.calculate_round1_rankings()
    return jsonify({'success': True, 'qualifiedUsers': [p.to_dict() for p in qualified]})


@scores.route('/rankings/final', methods=['POST'])
@admin_required
def calculate_final_rankings():
    ranked = get_services().rankings.calculate_final_rankings()
    return jsonify({'success': True, 'users': [p.to_dict() for p in ranked]})


@scores.route('/qualified', methods=['POST'])
@admin_required
def update_qualified_users():
    data = request.get_json(silent=True) or {}
    uids = data.get('uids')
    if not isinstance(uids, list) or not all(isinstance(u, str) for u in uids):
        raise ValidationError('uids must be a list of user ids')
    get_services().rankings.update_qualified_users(uids)
    return jsonify({'success': True})


@scores.route('/answers', methods=['GET'])
@admin_required
def answer_log():
    """Immediate-mode answer records, oldest first, optionally for one round."""
    round_number = request.args.get('round', type=int)
    return jsonify([a.to_dict() for a in get_services().scores.answers(round_number)])
