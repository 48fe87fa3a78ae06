from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from trivia.api import int_field
from trivia.security import admin_required, participant_required
from trivia.services.game import get_services

buzzer = Blueprint('buzzer', __name__)


@buzzer.route('/press', methods=['POST'])
@participant_required
def press_buzzer():
    data = request.get_json(silent=True) or {}
    response_time = int_field(data, 'responseTime', required=True)
    question_number = int_field(data, 'questionNumber')
    response = get_services().scoring.press_buzzer(current_user.uid, response_time, question_number)
    return jsonify(response.to_dict()), 201


@buzzer.route('/<int:question_number>', methods=['GET'])
@login_required
def buzzer_responses(question_number):
    """Responses for one question, fastest first."""
    return jsonify([r.to_dict() for r in get_services().scoring.buzzer_rankings(question_number)])


@buzzer.route('/score', methods=['POST'])
@admin_required
def score_buzzer_response():
    data = request.get_json(silent=True) or {}
    uid = data.get('userId')
    question_number = int_field(data, 'questionNumber', required=True)
    points = int_field(data, 'points', required=True)
    profile = get_services().scoring.score_buzzer_response(uid, question_number, points)
    return jsonify({'success': True, 'user': profile.to_dict()})


@buzzer.route('/reset-all', methods=['POST'])
@admin_required
def reset_buzzer_round():
    deleted = get_services().lifecycle.reset_buzzer_round()
    return jsonify({'success': True, 'deleted': deleted})
