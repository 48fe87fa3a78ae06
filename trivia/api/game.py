from flask import Blueprint, jsonify, request
from flask_login import current_user

from trivia.api import int_field
from trivia.errors import StateError
from trivia.security import admin_required
from trivia.services.game import get_services
from trivia.services.game.timer import remaining_seconds

game = Blueprint('game', __name__)


def _state_payload(state):
    services = get_services()
    payload = state.to_dict()
    payload['remainingSeconds'] = remaining_seconds(state, services.clock())
    return payload


@game.route('/state', methods=['GET'])
def get_game_state():
    """Current game document, created with defaults on first read."""
    return jsonify(_state_payload(get_services().states.ensure()))


@game.route('/round1/enable', methods=['POST'])
@admin_required
def enable_round1():
    services = get_services()
    services.states.ensure()
    return jsonify(_state_payload(services.machine.enable_round1(admin_uid=current_user.uid)))


@game.route('/round1/end', methods=['POST'])
@admin_required
def end_round1():
    return jsonify(_state_payload(get_services().machine.end_round1()))


@game.route('/next-question', methods=['POST'])
@admin_required
def next_question():
    data = request.get_json(silent=True) or {}
    round_number = int_field(data, 'round', required=True)
    return jsonify(_state_payload(get_services().machine.next_question(round_number)))


@game.route('/round2/enable', methods=['POST'])
@admin_required
def enable_round2():
    return jsonify(_state_payload(get_services().machine.enable_round2()))


@game.route('/round2/question', methods=['POST'])
@admin_required
def show_round2_question():
    services = get_services()
    if not services.states.get().round2_active:
        raise StateError('Round 2 is not active')
    return jsonify(_state_payload(services.machine.enable_round2_question()))


@game.route('/round2/buzzer', methods=['POST'])
@admin_required
def open_buzzer():
    services = get_services()
    # The buzzer opens only once the question has been shown
    if not services.states.get().round2_question_active:
        raise StateError('Show the question before activating the buzzer')
    return jsonify(_state_payload(services.machine.enable_round2_buzzer()))


@game.route('/round2/buzzer/reset', methods=['POST'])
@admin_required
def reset_buzzer():
    return jsonify(_state_payload(get_services().machine.reset_buzzer()))


@game.route('/round2/end', methods=['POST'])
@admin_required
def end_round2():
    return jsonify(_state_payload(get_services().machine.end_round2()))


@game.route('/qualified-count', methods=['POST'])
@admin_required
def set_qualified_count():
    data = request.get_json(silent=True) or {}
    count = int_field(data, 'count', required=True)
    return jsonify(_state_payload(get_services().machine.set_qualified_count(count)))


@game.route('/timer/start', methods=['POST'])
@admin_required
def start_timer():
    data = request.get_json(silent=True) or {}
    return jsonify(_state_payload(get_services().machine.start_timer(int_field(data, 'duration'))))


@game.route('/timer/stop', methods=['POST'])
@admin_required
def stop_timer():
    return jsonify(_state_payload(get_services().machine.stop_timer()))


@game.route('/timer/reset', methods=['POST'])
@admin_required
def reset_timer():
    data = request.get_json(silent=True) or {}
    return jsonify(_state_payload(get_services().machine.reset_timer(int_field(data, 'duration'))))


@game.route('/reset', methods=['POST'])
@admin_required
def reset_round():
    data = request.get_json(silent=True) or {}
    round_number = int_field(data, 'round', required=True)
    return jsonify(_state_payload(get_services().lifecycle.reset_round(round_number)))


@game.route('/reset-game', methods=['POST'])
@admin_required
def reset_game():
    return jsonify(_state_payload(get_services().lifecycle.reset_game()))
