"""A whole game driven over HTTP, with participant sessions doing local scoring."""
from trivia.client import ParticipantSession, RemoteError
from tests.conftest import login


class FlaskRemote:
    """RemoteGame's HTTP calls, served by a Flask test client."""

    def __init__(self, http):
        self.http = http
        self.final_submits = 0

    def _post(self, path, payload):
        res = self.http.post(path, json=payload)
        if res.status_code >= 400:
            raise RemoteError(res.get_json().get('error'), res.status_code)
        return res.get_json()

    def validate_answer(self, question_id, answer):
        return self._post('/api/scores/round1/validate', {'questionId': question_id, 'answer': answer})

    def submit_final_round1_score(self, total, answers):
        self.final_submits += 1
        return self._post('/api/scores/round1/final', {'totalScore': total, 'answers': answers})

    def press_buzzer(self, response_time, question_number):
        return self._post('/api/buzzer/press', {'responseTime': response_time, 'questionNumber': question_number})


def state_of(admin):
    return admin.get('/api/game/state').get_json()


def test_full_game(flask_app, admin, teams, services, clock):
    alpha_uid, beta_uid, gamma_uid = teams
    sessions = {}
    for name, uid in zip(('alpha', 'beta', 'gamma'), teams):
        http = login(flask_app, f'{name}@trivia.local')
        sessions[uid] = ParticipantSession(FlaskRemote(http), uid, clock=clock, sleep=lambda _: None)

    def broadcast():
        state = state_of(admin)
        for session in sessions.values():
            session.on_game_state(state)

    state_of(admin)
    admin.post('/api/game/qualified-count', json={'count': 2})
    admin.post('/api/game/round1/enable')
    admin.post('/api/game/timer/start')
    broadcast()

    clock.advance(seconds=30)
    assert sessions[alpha_uid].submit_answer('Elephant')['points'] == 150
    clock.advance(seconds=15)
    assert sessions[beta_uid].submit_answer('elephant')['points'] == 135
    assert sessions[gamma_uid].submit_answer('giraffe')['points'] == 0

    admin.post('/api/game/next-question', json={'round': 1})
    admin.post('/api/game/timer/start')
    broadcast()
    assert sessions[gamma_uid].submit_answer('butterfly')['points'] == 180

    # Nothing reached the server during Round 1
    assert services.scores.profile(alpha_uid).round1_score == 0

    admin.post('/api/game/round1/end')
    broadcast()
    scores = {uid: services.scores.profile(uid).round1_score for uid in teams}
    assert scores == {alpha_uid: 150, beta_uid: 135, gamma_uid: 180}
    assert [s.remote.final_submits for s in sessions.values()] == [1, 1, 1]

    res = admin.post('/api/game/round2/enable')
    assert res.get_json()['round2Active'] is True
    qualified = {uid for uid in teams if services.scores.profile(uid).qualified}
    assert qualified == {gamma_uid, alpha_uid}

    admin.post('/api/game/round2/question')
    admin.post('/api/game/round2/buzzer')
    for uid in teams:
        sessions[uid].on_profile(services.scores.profile(uid).to_dict())
    broadcast()

    clock.advance(ms=300)
    sessions[alpha_uid].press_buzzer()
    clock.advance(ms=200)
    sessions[gamma_uid].press_buzzer()

    ranked = admin.get('/api/buzzer/1').get_json()
    assert [(r['userId'], r['responseTime']) for r in ranked] == [(alpha_uid, 300), (gamma_uid, 500)]

    admin.post('/api/buzzer/score', json={'userId': alpha_uid, 'questionNumber': 1, 'points': 20})
    admin.post('/api/buzzer/score', json={'userId': gamma_uid, 'questionNumber': 1, 'points': -20})

    # Round 2 state changes never resend the Round 1 total
    assert [s.remote.final_submits for s in sessions.values()] == [1, 1, 1]

    res = admin.post('/api/game/round2/end')
    assert res.get_json()['gameEnded'] is True

    board = admin.get('/api/scores/leaderboard').get_json()
    assert [(r['uid'], r['totalScore'], r['finalRank']) for r in board] == [
        (alpha_uid, 170, 1),
        (gamma_uid, 160, 2),
        (beta_uid, 135, 3),
    ]
    assert {r['uid']: r['round2Rank'] for r in board} == {alpha_uid: 1, gamma_uid: 2, beta_uid: None}
