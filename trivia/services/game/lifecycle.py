from flask import current_app

from trivia.errors import ValidationError
from trivia.models import GameState, UserProfile
from .repositories import BuzzerRepository, GameStateRepository, ScoreRepository
from .timer import DEFAULT_DURATION_SEC


class RoundLifecycle:
    """Round and game resets.

    Resets recompute from preserved data, so an admin can simply rerun one
    that failed halfway. Steps commit separately and are not transactional
    as a whole.
    """

    def __init__(self, states: GameStateRepository, scores: ScoreRepository, buzzers: BuzzerRepository,
                 timer_duration: int = DEFAULT_DURATION_SEC):
        self.states = states
        self.scores = scores
        self.buzzers = buzzers
        self.timer_duration = timer_duration

    def _timer_idle(self) -> dict:
        return {
            'timer_active': False,
            'timer_start_time': None,
            'timer_duration': self.timer_duration,
            'time_remaining': self.timer_duration,
        }

    def reset_round(self, round_number: int) -> GameState:
        if round_number == 1:
            return self._reset_round1()
        if round_number == 2:
            return self._reset_round2()
        raise ValidationError('Invalid round number')

    def _reset_round1(self) -> GameState:
        state = self.states.update(
            round1_active=False,
            game_started=False,
            current_question=1,
            **self._timer_idle(),
        )
        deleted = self.scores.delete_answers(round_number=1)
        # Round 2 scores survive; totals are recomputed from them
        self.scores.reset_participants(round1_score=0, round1_completed=False, round1_answers=None)
        current_app.logger.info(f"[reset] round1 answers_deleted={deleted}")
        return state

    def _reset_round2(self) -> GameState:
        state = self.states.update(
            round2_active=False,
            current_question=1,
            round2_question_active=False,
            round2_buzzer_active=False,
            buzzer_start_time=None,
            **self._timer_idle(),
        )
        deleted = self.scores.delete_answers(round_number=2)
        buzzes = self.buzzers.delete()
        # Simplified re-qualification from the preserved Round 1 score
        self.scores.reset_participants(round2_score=0, qualified=UserProfile.round1_score > 0)
        current_app.logger.info(f"[reset] round2 answers_deleted={deleted} buzzer_deleted={buzzes}")
        return state

    def reset_game(self) -> GameState:
        state = self.states.update(
            round1_active=False,
            round2_active=False,
            current_round=1,
            current_question=1,
            round2_question_active=False,
            round2_buzzer_active=False,
            buzzer_start_time=None,
            game_started=False,
            game_ended=False,
            **self._timer_idle(),
        )
        deleted = self.scores.delete_answers()
        buzzes = self.buzzers.delete()
        self.scores.reset_participants(
            round1_score=0,
            round2_score=0,
            round1_rank=None,
            round2_rank=None,
            final_rank=None,
            qualified=False,
            round1_completed=False,
            round1_answers=None,
        )
        current_app.logger.info(f"[reset] game answers_deleted={deleted} buzzer_deleted={buzzes}")
        return state

    def reset_buzzer_round(self) -> int:
        """Purge every buzzer response, whatever the question."""
        deleted = self.buzzers.delete()
        current_app.logger.info(f"[reset] buzzer responses deleted={deleted}")
        return deleted
