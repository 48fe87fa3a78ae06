import pytest
import requests

from trivia.client import ParticipantSession, RemoteError
from trivia.client.transport import RemoteGame


class FakeResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError('no body')
        return self._body


class FakeHttp:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.cookies = []

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url, json))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


class FakeSio:
    def __init__(self):
        self.handlers = {}
        self.emitted = []
        self.connected = False

    def on(self, event, handler, namespace=None):
        self.handlers[event] = handler

    def connect(self, url, headers=None, namespaces=None):
        self.connected = True
        self.handlers['connect']()

    def emit(self, event, data, namespace=None):
        self.emitted.append((event, data))

    def disconnect(self):
        self.connected = False


def test_http_calls_use_the_api_paths():
    http = FakeHttp(FakeResponse(200, {'isCorrect': True, 'correctAnswer': 'ELEPHANT'}))
    remote = RemoteGame('http://trivia.test/', http=http, sio=FakeSio())
    assert remote.validate_answer(1, 'elephant')['isCorrect'] is True
    assert http.calls == [('POST', 'http://trivia.test/api/scores/round1/validate',
                           {'questionId': 1, 'answer': 'elephant'})]


def test_server_errors_become_remote_errors():
    http = FakeHttp(FakeResponse(409, {'error': 'The buzzer is not active'}), FakeResponse(502, None))
    remote = RemoteGame('http://trivia.test', http=http, sio=FakeSio())
    with pytest.raises(RemoteError) as exc:
        remote.press_buzzer(120, 1)
    assert exc.value.status_code == 409
    assert exc.value.message == 'The buzzer is not active'
    with pytest.raises(RemoteError):
        remote.leaderboard()


def test_network_failures_become_remote_errors():
    http = FakeHttp(requests.ConnectionError('refused'))
    remote = RemoteGame('http://trivia.test', http=http, sio=FakeSio())
    with pytest.raises(RemoteError):
        remote.submit_final_round1_score(90, {})


def test_attach_subscribes_and_follows_buzzer_question():
    sio = FakeSio()
    remote = RemoteGame('http://trivia.test', http=FakeHttp(), sio=sio)
    session = ParticipantSession(remote, 'team-alpha')
    remote.attach(session)
    assert sio.emitted == [('subscribe', {'topic': 'game'}), ('subscribe', {'topic': 'user'})]

    sio.emitted.clear()
    state = {'currentRound': 2, 'currentQuestion': 3, 'round1Active': False, 'round2Active': True}
    session.accumulator.flushed = True
    sio.handlers['game_state'](state)
    assert session.state == state
    assert sio.emitted == [('subscribe', {'topic': 'buzzer', 'questionNumber': 3})]

    sio.emitted.clear()
    sio.handlers['game_state'](dict(state, currentQuestion=4))
    assert sio.emitted == [
        ('unsubscribe', {'topic': 'buzzer', 'questionNumber': 3}),
        ('subscribe', {'topic': 'buzzer', 'questionNumber': 4}),
    ]

    remote.close()
    assert session.closed
    assert not sio.connected
