from typing import Callable, Optional

from flask import current_app

from trivia.errors import StateError, ValidationError
from trivia.models import GameState
from .ranking import RankingEngine
from .repositories import BuzzerRepository, GameStateRepository
from .timer import DEFAULT_DURATION_SEC, now_ms, remaining_seconds


class GameStateMachine:
    """Admin-issued transitions of the shared game document.

    Each transition is a single atomic update of the document (plus the
    listed side effects); nothing is retried automatically.
    """

    def __init__(self, states: GameStateRepository, rankings: RankingEngine, buzzers: BuzzerRepository,
                 clock: Callable[[], int] = now_ms, timer_duration: int = DEFAULT_DURATION_SEC):
        self.states = states
        self.rankings = rankings
        self.buzzers = buzzers
        self.clock = clock
        self.timer_duration = timer_duration

    def _timer_idle(self, duration: Optional[int] = None) -> dict:
        duration = duration or self.timer_duration
        return {
            'timer_active': False,
            'timer_start_time': None,
            'timer_duration': duration,
            'time_remaining': duration,
        }

    def _duration(self, duration) -> int:
        if duration is None:
            return self.timer_duration
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise ValidationError('Timer duration must be a positive number of seconds')
        return duration

    # -- Round 1 ----------------------------------------------------------

    def enable_round1(self, admin_uid: Optional[str] = None) -> GameState:
        fields = dict(
            round1_active=True,
            game_started=True,
            current_round=1,
            current_question=1,
            **self._timer_idle(),
        )
        if admin_uid:
            fields['admin_uid'] = admin_uid
        state = self.states.update(**fields)
        current_app.logger.info('[round1] enabled at question 1')
        return state

    def end_round1(self) -> GameState:
        """Close Round 1; participants flush their local totals when they see this."""
        state = self.states.update(
            round1_active=False,
            current_round=2,
            timer_active=False,
            timer_start_time=None,
        )
        current_app.logger.info('[round1] ended')
        return state

    def next_question(self, round_number: int) -> GameState:
        if round_number not in (1, 2):
            raise ValidationError('Round must be 1 or 2')
        state = self.states.get()
        active = state.round1_active if round_number == 1 else state.round2_active
        if not active:
            raise StateError(f'Round {round_number} is not active')
        current = state.current_question
        if current >= state.total_questions(round_number):
            raise StateError(f'Round {round_number} is complete')

        fields = dict(
            current_question=current + 1,
            round2_buzzer_active=False,
            buzzer_start_time=None,
            **self._timer_idle(),
        )
        if round_number == 2:
            fields['round2_question_active'] = False
        # Compare-and-swap on the question pointer so a double advance cannot skip one
        state = self.states.compare_and_update({'current_question': current}, **fields)
        if round_number == 2:
            self.buzzers.delete(state.current_question)
        current_app.logger.info(f"[next-question] round={round_number} question {current} -> {state.current_question}")
        return state

    # -- Round 2 ----------------------------------------------------------

    def enable_round2(self) -> GameState:
        """Qualify the top Round 1 teams and open Round 2.

        Clients only send their Round 1 totals once Round 1 has ended, so
        ``end_round1`` should run first or qualification sees no scores.
        """
        if not any(p.round1_completed for p in self.rankings.scores.participants()):
            current_app.logger.warning("[round2] enabled before any Round 1 score was submitted; end Round 1 first")
        qualified = self.rankings.calculate_round1_rankings()
        state = self.states.update(
            round1_active=False,
            round2_active=True,
            current_round=2,
            current_question=1,
            round2_question_active=False,
            round2_buzzer_active=False,
            buzzer_start_time=None,
            **self._timer_idle(),
        )
        current_app.logger.info(f"[round2] enabled with {len(qualified)} qualified teams")
        return state

    def enable_round2_question(self) -> GameState:
        return self.states.update(round2_question_active=True, round2_buzzer_active=False)

    def enable_round2_buzzer(self) -> GameState:
        state = self.states.update(round2_buzzer_active=True, buzzer_start_time=self.clock())
        current_app.logger.info(f"[buzzer] open for question {state.current_question}")
        return state

    def reset_buzzer(self) -> GameState:
        """Clear the current question's buzzes and close the buzzer."""
        question = self.states.get().current_question
        self.buzzers.delete(question)
        return self.states.update(round2_buzzer_active=False, buzzer_start_time=None)

    def end_round2(self) -> GameState:
        state = self.states.update(
            round2_active=False,
            round2_buzzer_active=False,
            game_ended=True,
            timer_active=False,
            timer_start_time=None,
        )
        self.rankings.calculate_final_rankings()
        current_app.logger.info('[round2] ended, final rankings computed')
        return state

    def set_qualified_count(self, count: int) -> GameState:
        cap = self.rankings.qualified_cap
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= cap:
            raise ValidationError(f'Qualified count must be between 1 and {cap}')
        return self.states.update(qualified_count=count)

    # -- Timer ------------------------------------------------------------

    def start_timer(self, duration: Optional[int] = None) -> GameState:
        """One write; every client derives the countdown from the start time."""
        duration = self._duration(duration)
        state = self.states.update(
            timer_active=True,
            timer_start_time=self.clock(),
            timer_duration=duration,
            time_remaining=duration,
        )
        current_app.logger.info(f"[timer-start] duration={duration}s start={state.timer_start_time}")
        return state

    def stop_timer(self) -> GameState:
        remaining = remaining_seconds(self.states.get(), self.clock())
        state = self.states.update(timer_active=False, timer_start_time=None, time_remaining=remaining)
        current_app.logger.info(f"[timer-stop] remaining={remaining}s")
        return state

    def reset_timer(self, duration: Optional[int] = None) -> GameState:
        state = self.states.update(**self._timer_idle(self._duration(duration)))
        current_app.logger.info(f"[timer-reset] duration={state.timer_duration}s")
        return state
