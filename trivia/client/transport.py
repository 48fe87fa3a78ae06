import logging
from typing import Optional

import requests
import socketio

from trivia.services.game.notify import NAMESPACE
from .errors import RemoteError

logger = logging.getLogger(__name__)


class RemoteGame:
    """HTTP calls and live subscriptions against a running trivia server."""

    def __init__(self, base_url: str, http: Optional[requests.Session] = None,
                 sio: Optional[socketio.Client] = None, timeout: float = 10):
        self.base_url = base_url.rstrip('/')
        self.http = http or requests.Session()
        self.sio = sio or socketio.Client(reconnection=True)
        self.timeout = timeout
        self.session = None
        self._buzzer_question = None

    def _request(self, method: str, path: str, payload=None):
        try:
            resp = self.http.request(method, f'{self.base_url}{path}', json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteError(f'Could not reach the server: {exc}') from exc
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            message = body.get('error') if isinstance(body, dict) else None
            raise RemoteError(message or f'Request failed with status {resp.status_code}', resp.status_code)
        return body

    # -- HTTP ---------------------------------------------------------------

    def login(self, email: str, password: str) -> dict:
        return self._request('POST', '/login', {'email': email, 'password': password})['user']

    def game_state(self) -> dict:
        return self._request('GET', '/api/game/state')

    def current_question(self) -> dict:
        return self._request('GET', '/api/scores/questions/current')

    def validate_answer(self, question_id: int, answer: str) -> dict:
        return self._request('POST', '/api/scores/round1/validate', {'questionId': question_id, 'answer': answer})

    def submit_final_round1_score(self, total: int, answers: dict) -> dict:
        return self._request('POST', '/api/scores/round1/final', {'totalScore': total, 'answers': answers})

    def press_buzzer(self, response_time: int, question_number: int) -> dict:
        return self._request('POST', '/api/buzzer/press',
                             {'responseTime': response_time, 'questionNumber': question_number})

    def leaderboard(self) -> list:
        return self._request('GET', '/api/scores/leaderboard')

    # -- live updates -------------------------------------------------------

    def attach(self, session) -> None:
        """Route server pushes into ``session`` and subscribe to its topics."""
        self.session = session
        self.sio.on('game_state', self._on_game_state, namespace=NAMESPACE)
        self.sio.on('profile', session.on_profile, namespace=NAMESPACE)
        self.sio.on('buzzer_responses', session.on_buzzer_responses, namespace=NAMESPACE)
        self.sio.on('error', self._on_error, namespace=NAMESPACE)
        self.sio.on('connect', self._on_connect, namespace=NAMESPACE)

        cookies = '; '.join(f'{c.name}={c.value}' for c in self.http.cookies)
        self.sio.connect(self.base_url, headers={'Cookie': cookies} if cookies else {},
                         namespaces=[NAMESPACE])

    def _subscribe(self, topic: str, **extra) -> None:
        self.sio.emit('subscribe', dict(topic=topic, **extra), namespace=NAMESPACE)

    def _on_connect(self):
        # Re-subscribe on every (re)connect; the server replies with fresh snapshots
        self._buzzer_question = None
        self._subscribe('game')
        self._subscribe('user')

    def _on_game_state(self, state):
        if self.session is None:
            return
        self.session.on_game_state(state)
        question = state.get('currentQuestion')
        if state.get('round2Active') and question != self._buzzer_question:
            if self._buzzer_question is not None:
                self.sio.emit('unsubscribe', {'topic': 'buzzer', 'questionNumber': self._buzzer_question},
                              namespace=NAMESPACE)
            self._buzzer_question = question
            self._subscribe('buzzer', questionNumber=question)

    def _on_error(self, data):
        logger.warning('server reported %s', data)

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
        if self.sio.connected:
            self.sio.disconnect()
        self.http.close()
