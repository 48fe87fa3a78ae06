NAMESPACE = '/ws'

GAME_ROOM = 'game'
LEADERBOARD_ROOM = 'leaderboard'


def user_room(uid: str) -> str:
    return f"user:{uid}"


def buzzer_room(question_number: int) -> str:
    return f"buzzer:{int(question_number)}"


class Publisher:
    """Pushes committed documents to the Socket.IO rooms that subscribe to them."""

    def __init__(self, socketio, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def game_state(self, payload: dict) -> None:
        self.socketio.emit('game_state', payload, to=GAME_ROOM, namespace=self.namespace)

    def profile(self, payload: dict) -> None:
        self.socketio.emit('profile', payload, to=user_room(payload['uid']), namespace=self.namespace)

    def leaderboard(self, rows: list) -> None:
        self.socketio.emit('leaderboard', rows, to=LEADERBOARD_ROOM, namespace=self.namespace)

    def buzzer_responses(self, question_number: int, rows: list) -> None:
        self.socketio.emit(
            'buzzer_responses',
            {'questionNumber': int(question_number), 'responses': rows},
            to=buzzer_room(question_number),
            namespace=self.namespace,
        )
