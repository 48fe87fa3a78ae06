from trivia.services.game.timer import is_running, remaining_seconds

START = 1_700_000_000_000


def running(duration=90, start=START, remaining=None):
    return {
        'timerActive': True,
        'timerStartTime': start,
        'timerDuration': duration,
        'timeRemaining': duration if remaining is None else remaining,
    }


def test_remaining_counts_down_in_whole_seconds():
    state = running()
    assert remaining_seconds(state, START) == 90
    assert remaining_seconds(state, START + 999) == 90
    assert remaining_seconds(state, START + 30_000) == 60
    assert remaining_seconds(state, START + 30_999) == 60


def test_remaining_is_clamped_to_zero_and_duration():
    state = running()
    assert remaining_seconds(state, START + 120_000) == 0
    # Observer clock behind the start time
    assert remaining_seconds(state, START - 5_000) == 90


def test_stopped_timer_reports_persisted_remaining():
    state = {'timerActive': False, 'timerStartTime': None, 'timerDuration': 90, 'timeRemaining': 42}
    assert not is_running(state)
    assert remaining_seconds(state, START + 500_000) == 42


def test_active_without_start_time_is_not_running():
    state = {'timerActive': True, 'timerStartTime': None, 'timerDuration': 60, 'timeRemaining': None}
    assert not is_running(state)
    assert remaining_seconds(state, START) == 60


def test_model_rows_are_accepted(services, clock):
    state = services.states.ensure()
    assert remaining_seconds(state, clock()) == 90
    services.machine.start_timer(30)
    clock.advance(seconds=10)
    assert remaining_seconds(services.states.get(), clock()) == 20
