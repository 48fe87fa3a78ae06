import json

import pytest

from trivia.client import ClientError, Countdown, ParticipantSession, RemoteError, Round1Accumulator

START = 1_700_000_000_000


class Clock:
    def __init__(self):
        self.now = START

    def __call__(self):
        return self.now


class FakeRemote:
    """Stands in for RemoteGame; records calls and can fail on demand."""

    def __init__(self, failures=0):
        self.failures = failures
        self.submitted = []
        self.buzzes = []

    def validate_answer(self, question_id, answer):
        key = {1: 'ELEPHANT', 2: 'BUTTERFLY'}[question_id]
        return {'isCorrect': answer.upper() == key, 'correctAnswer': key}

    def submit_final_round1_score(self, total, answers):
        if self.failures:
            self.failures -= 1
            raise RemoteError('server unavailable', 503)
        self.submitted.append((total, answers))
        return {'success': True}

    def press_buzzer(self, response_time, question_number):
        self.buzzes.append((response_time, question_number))
        return {'responseTime': response_time, 'questionNumber': question_number}


def game(**overrides):
    state = {
        'currentRound': 1,
        'currentQuestion': 1,
        'round1Active': True,
        'round2Active': False,
        'round2BuzzerActive': False,
        'timerActive': False,
        'timerStartTime': None,
        'timerDuration': 90,
        'timeRemaining': 90,
    }
    state.update(overrides)
    return state


# -- accumulator -------------------------------------------------------------

def test_accumulator_totals_and_answered_flags():
    acc = Round1Accumulator()
    assert acc.record(1, 'ELEPHANT', True, 45) == 135
    assert acc.record(2, 'MOTH', False, 30) == 0
    assert acc.total == 135
    assert acc.answered(1)
    assert not acc.answered(2)
    with pytest.raises(ValueError):
        acc.record(1, 'ELEPHANT', True, 10)


def test_accumulator_survives_restart(tmp_path):
    path = str(tmp_path / 'round1.json')
    acc = Round1Accumulator(path)
    acc.record(1, 'ELEPHANT', True, 90)
    acc.record(2, 'BUTTERFLY', True, 0)

    restored = Round1Accumulator(path)
    assert restored.total == 270
    assert restored.answered(2)
    assert not restored.flushed


def test_accumulator_ignores_corrupt_storage(tmp_path):
    path = tmp_path / 'round1.json'
    path.write_text('{not json')
    acc = Round1Accumulator(str(path))
    assert acc.total == 0


def test_flush_retries_once_after_delay(tmp_path):
    path = str(tmp_path / 'round1.json')
    acc = Round1Accumulator(path)
    acc.record(1, 'ELEPHANT', True, 45)
    remote = FakeRemote(failures=1)
    delays = []

    assert acc.flush(remote.submit_final_round1_score, retry_delay=2, sleep=delays.append) is True
    assert delays == [2]
    assert remote.submitted[0][0] == 135
    with open(path) as fh:
        assert json.load(fh)['flushed'] is True


def test_flush_gives_up_after_second_failure():
    acc = Round1Accumulator()
    acc.record(1, 'ELEPHANT', True, 45)
    remote = FakeRemote(failures=2)
    delays = []
    assert acc.flush(remote.submit_final_round1_score, sleep=delays.append) is False
    assert delays == [2]
    assert remote.submitted == []
    assert acc.total == 135


# -- countdown ---------------------------------------------------------------

def test_countdown_ticks_from_shared_start_time():
    clock = Clock()
    ticks = []
    tasks = []

    def sleep(_):
        clock.now += 1000

    countdown = Countdown(on_tick=ticks.append, clock=clock, spawn=tasks.append, sleep=sleep)
    countdown.observe(game(timerActive=True, timerStartTime=START - 87_000))
    assert ticks == [3]
    assert len(tasks) == 1

    tasks[0]()
    assert ticks == [3, 2, 1, 0]


def test_countdown_stopped_timer_shows_persisted_value():
    clock = Clock()
    tasks = []
    countdown = Countdown(clock=clock, spawn=tasks.append)
    assert countdown.observe(game(timeRemaining=37)) == 37
    assert tasks == []


def test_closed_countdown_stops_ticking():
    clock = Clock()
    ticks = []
    tasks = []
    countdown = Countdown(on_tick=ticks.append, clock=clock, spawn=tasks.append, sleep=lambda _: None)
    countdown.observe(game(timerActive=True, timerStartTime=START))
    countdown.close()
    tasks[0]()
    assert ticks == [90]


def test_timer_restarted_as_countdown_ends_keeps_ticking():
    clock = Clock()
    ticks = []
    tasks = []

    def on_tick(value):
        ticks.append(value)
        # The admin starts the next question's timer the moment the last one hits zero
        if value == 0 and len(ticks) == 2:
            countdown.observe(game(timerActive=True, timerStartTime=clock.now, timerDuration=2))

    def sleep(_):
        clock.now += 1000

    countdown = Countdown(on_tick=on_tick, clock=clock, spawn=tasks.append, sleep=sleep)
    countdown.observe(game(timerActive=True, timerStartTime=START - 89_000))
    tasks[0]()
    assert ticks == [1, 0, 2, 1, 0]
    assert len(tasks) == 1

    # Once the loop has exited a new timer spawns a fresh one
    countdown.observe(game(timerActive=True, timerStartTime=clock.now))
    assert len(tasks) == 2


# -- session -----------------------------------------------------------------

def make_session(remote=None, **kwargs):
    clock = Clock()
    session = ParticipantSession(remote or FakeRemote(), 'team-alpha', clock=clock,
                                 sleep=lambda _: None, **kwargs)
    return session, clock


def test_session_scores_with_local_countdown():
    session, clock = make_session()
    session.on_game_state(game(timerActive=True, timerStartTime=START))
    clock.now += 45_000
    result = session.submit_answer('elephant')
    assert result['points'] == 135
    assert result['total'] == 135
    with pytest.raises(ClientError):
        session.submit_answer('elephant')


def test_session_rejects_invalid_answers():
    session, _ = make_session()
    with pytest.raises(ClientError):
        session.submit_answer('elephant')
    session.on_game_state(game())
    with pytest.raises(ClientError):
        session.submit_answer('   ')
    session.on_game_state(game(round1Active=False))
    with pytest.raises(ClientError):
        session.submit_answer('elephant')


def test_wrong_answer_allows_another_try():
    session, _ = make_session()
    session.on_game_state(game())
    assert session.submit_answer('zebra')['isCorrect'] is False
    assert session.answered is False
    assert session.submit_answer('elephant')['isCorrect'] is True


def test_question_change_clears_answered_flag():
    session, _ = make_session()
    session.on_game_state(game())
    session.submit_answer('elephant')
    assert session.answered
    session.on_game_state(game(currentQuestion=2))
    assert not session.answered


def test_end_of_round1_flushes_exactly_once():
    remote = FakeRemote()
    session, _ = make_session(remote)
    session.on_game_state(game(timeRemaining=60))
    assert session.submit_answer('elephant')['points'] == 150
    session.on_game_state(game(currentRound=2, round1Active=False))
    session.on_game_state(game(currentRound=2, round1Active=False, round2Active=True))
    assert len(remote.submitted) == 1
    assert remote.submitted[0][0] == 150


def test_buzzer_response_time_measured_from_observed_open():
    remote = FakeRemote()
    session, clock = make_session(remote)
    session.on_profile({'uid': 'team-alpha', 'qualified': True})
    round2 = dict(currentRound=2, round1Active=False, round2Active=True, round2QuestionActive=True)
    session.on_game_state(game(**round2))
    with pytest.raises(ClientError):
        session.press_buzzer()

    session.on_game_state(game(round2BuzzerActive=True, **round2))
    clock.now += 420
    session.press_buzzer()
    assert remote.buzzes == [(420, 1)]
    with pytest.raises(ClientError):
        session.press_buzzer()

    # The admin reset the buzzer for this question
    session.on_buzzer_responses({'questionNumber': 1, 'responses': []})
    assert session.buzzed is False


def test_unqualified_team_cannot_buzz():
    session, _ = make_session()
    session.on_profile({'uid': 'team-alpha', 'qualified': False})
    session.on_game_state(game(currentRound=2, round1Active=False, round2Active=True, round2BuzzerActive=True))
    with pytest.raises(ClientError):
        session.press_buzzer()


def test_closed_session_ignores_pushes():
    remote = FakeRemote()
    session, _ = make_session(remote)
    session.close()
    session.on_game_state(game(currentRound=2, round1Active=False))
    assert session.state is None
    assert remote.submitted == []
