"""Game domain services: timer, state machine, scoring, rankings and resets.

This package contains the core game mechanics. HTTP routes and socket
handlers import it through ``get_services()``, keeping transport concerns
separated from the engine. One container is built per Flask app.
"""
import os
from typing import Callable

from flask import current_app

from .lifecycle import RoundLifecycle
from .notify import Publisher
from .questions import QuestionBank
from .ranking import RankingEngine
from .repositories import BuzzerRepository, GameStateRepository, ScoreRepository
from .scoring import ScoringEngine
from .state_machine import GameStateMachine
from .timer import now_ms

DEFAULT_QUESTIONS_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), 'data', 'questions.json')


class TriviaServices:

    def __init__(self, db, socketio, config, clock: Callable[[], int] = now_ms):
        duration = int(config.get('TIMER_DURATION_SEC', 90))
        self.publisher = Publisher(socketio)
        self.states = GameStateRepository(db, self.publisher, defaults={
            'timer_duration': duration,
            'time_remaining': duration,
            'round1_total_questions': int(config.get('ROUND1_TOTAL_QUESTIONS', 20)),
            'round2_total_questions': int(config.get('ROUND2_TOTAL_QUESTIONS', 15)),
            'qualified_count': int(config.get('QUALIFIED_COUNT', 10)),
        })
        self.scores = ScoreRepository(db, self.publisher)
        self.buzzers = BuzzerRepository(db, self.publisher)
        self.questions = QuestionBank(config.get('QUESTIONS_PATH') or DEFAULT_QUESTIONS_PATH)
        self.rankings = RankingEngine(
            self.states,
            self.scores,
            default_qualified=int(config.get('QUALIFIED_COUNT', 10)),
            qualified_cap=int(config.get('QUALIFIED_COUNT_CAP', 15)),
        )
        self.machine = GameStateMachine(self.states, self.rankings, self.buzzers, clock=self._now, timer_duration=duration)
        self.scoring = ScoringEngine(self.states, self.scores, self.buzzers, self.questions, clock=self._now)
        self.lifecycle = RoundLifecycle(self.states, self.scores, self.buzzers, timer_duration=duration)
        self.clock = clock

    def _now(self) -> int:
        # Indirection so a replaced clock reaches every engine
        return self.clock()


def init_services(flask_app, socketio) -> TriviaServices:
    from trivia import db
    services = TriviaServices(db, socketio, flask_app.config)
    flask_app.extensions['trivia'] = services
    return services


def get_services() -> TriviaServices:
    return current_app.extensions['trivia']
