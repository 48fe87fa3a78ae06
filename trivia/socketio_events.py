from flask import current_app
from flask_login import current_user
from flask_socketio import emit, join_room, leave_room
from sqlalchemy.exc import SQLAlchemyError

from trivia import socketio, db
from trivia.errors import TriviaError
from trivia.services.game import get_services
from trivia.services.game.notify import NAMESPACE, GAME_ROOM, LEADERBOARD_ROOM, buzzer_room, user_room


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*args):
    # Rooms are left automatically; nothing else is held per socket
    current_app.logger.debug('[ws] client disconnected')


def _topic_room(topic, data):
    if topic == 'game':
        return GAME_ROOM
    if topic == 'leaderboard':
        return LEADERBOARD_ROOM
    if topic == 'user':
        if not current_user.is_authenticated:
            raise TriviaError('Login required to follow a profile', 401)
        return user_room(current_user.uid)
    if topic == 'buzzer':
        question_number = data.get('questionNumber')
        if isinstance(question_number, bool) or not isinstance(question_number, int):
            raise TriviaError('questionNumber is required for buzzer subscriptions')
        return buzzer_room(question_number)
    raise TriviaError(f'Unknown topic: {topic}')


def _snapshot(topic, data):
    """Emit the current value right after subscribing, like a first change event."""
    services = get_services()
    if topic == 'game':
        emit('game_state', services.states.ensure().to_dict())
    elif topic == 'leaderboard':
        emit('leaderboard', [p.to_dict() for p in services.rankings.leaderboard()])
    elif topic == 'user':
        emit('profile', services.scores.require_profile(current_user.uid).to_dict())
    elif topic == 'buzzer':
        question_number = data['questionNumber']
        emit('buzzer_responses', {
            'questionNumber': question_number,
            'responses': [r.to_dict() for r in services.scoring.buzzer_rankings(question_number)],
        })


def handle_subscribe(data):
    data = data or {}
    topic = data.get('topic')
    try:
        room = _topic_room(topic, data)
        join_room(room)
        _snapshot(topic, data)
    except TriviaError as exc:
        emit('error', {'topic': topic, 'message': exc.message})
        return
    except SQLAlchemyError as exc:
        # Clients keep serving their last known value
        db.session.rollback()
        current_app.logger.warning(f"[ws] snapshot for {topic} failed: {exc}")
        emit('error', {'topic': topic, 'message': 'Live updates are temporarily unavailable'})
        return
    emit('subscribed', {'topic': topic, 'room': room})


def handle_unsubscribe(data):
    data = data or {}
    topic = data.get('topic')
    try:
        room = _topic_room(topic, data)
    except TriviaError as exc:
        emit('error', {'topic': topic, 'message': exc.message})
        return
    leave_room(room)
    emit('unsubscribed', {'topic': topic, 'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('subscribe', handle_subscribe, namespace=NAMESPACE)
    socketio.on_event('unsubscribe', handle_unsubscribe, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
