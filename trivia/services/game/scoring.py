from typing import Callable, Optional

from flask import current_app

from trivia.errors import NotFound, PermissionDenied, StateError, ValidationError
from .questions import QuestionBank
from .repositories import BuzzerRepository, GameStateRepository, ScoreRepository
from .timer import now_ms, remaining_seconds

BASE_POINTS = 90
MAX_TIME_BONUS = 90
# Points the admin may award for a verbal buzzer answer
BUZZER_POINT_MENU = (20, 0, -10, -20)


def normalize_answer(answer: Optional[str]) -> str:
    return (answer or '').strip().casefold()


def round1_points(is_correct: bool, time_remaining: int) -> int:
    """90 base points plus one point per second left, for a correct answer only."""
    if not is_correct:
        return 0
    return BASE_POINTS + max(0, min(MAX_TIME_BONUS, int(time_remaining)))


def max_round1_total(question_count: int) -> int:
    return question_count * (BASE_POINTS + MAX_TIME_BONUS)


class ScoringEngine:
    """Answer adjudication for both rounds."""

    def __init__(self, states: GameStateRepository, scores: ScoreRepository, buzzers: BuzzerRepository,
                 questions: QuestionBank, clock: Callable[[], int] = now_ms):
        self.states = states
        self.scores = scores
        self.buzzers = buzzers
        self.questions = questions
        self.clock = clock

    # -- Round 1 ----------------------------------------------------------

    def _open_question(self, round_number: int, question_number: int):
        state = self.states.get()
        if round_number == 1 and not state.round1_active:
            raise StateError('Round 1 is not active')
        if round_number == 2 and not state.round2_active:
            raise StateError('Round 2 is not active')
        if question_number != state.current_question:
            raise StateError('That question is no longer open')
        return state

    def validate_answer(self, question_id: int, answer: str) -> dict:
        """Check an answer to the open Round 1 question without writing anything.

        The response carries the key, so only the current question of an
        active Round 1 can be checked.
        """
        if not normalize_answer(answer):
            raise ValidationError('Please enter an answer')
        self._open_question(1, question_id)
        question = self.questions.round1(question_id)
        is_correct = normalize_answer(answer) == normalize_answer(question['word'])
        return {
            'isCorrect': is_correct,
            'correctAnswer': question['word'],
            'difficulty': question.get('difficulty'),
        }

    def submit_answer(self, uid: str, question_number: int, answer: str, round_number: int = 1) -> dict:
        """Record one attempt and credit its points straight away.

        Round 1 points come from the server's view of the countdown. Round 2
        attempts are logged only; the admin scores them through the buzzer.
        """
        if not normalize_answer(answer):
            raise ValidationError('Please enter an answer')
        state = self._open_question(round_number, question_number)

        is_correct, points, correct_answer = False, 0, None
        if round_number == 1:
            if self.scores.has_correct_answer(uid, 1, question_number):
                raise StateError('You have already answered this question')
            verdict = self.validate_answer(question_number, answer)
            is_correct = verdict['isCorrect']
            correct_answer = verdict['correctAnswer']
            points = round1_points(is_correct, remaining_seconds(state, self.clock()))

        self.scores.add_answer(uid, question_number, answer.strip().upper(), round_number, is_correct, points)
        if points:
            self.scores.add_points(uid, round_number, points)
        current_app.logger.info(
            f"[answer] uid={uid} round={round_number} q={question_number} correct={is_correct} points={points}"
        )
        return {'isCorrect': is_correct, 'points': points, 'correctAnswer': correct_answer}

    def submit_final_round1_score(self, uid: str, total: int, answers: Optional[dict] = None):
        """The single deferred write of a participant's locally accumulated Round 1."""
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise ValidationError('Total score must be a non-negative integer')
        answers = answers or {}
        if not isinstance(answers, dict):
            raise ValidationError('Answers must be a map of question id to answer')
        state = self.states.ensure()
        ceiling = max_round1_total(state.round1_total_questions)
        if total > ceiling:
            raise ValidationError(f'Total score cannot exceed {ceiling}')
        claimed = 0
        for entry in answers.values():
            points = entry.get('points', 0) if isinstance(entry, dict) else None
            if isinstance(points, bool) or not isinstance(points, int):
                raise ValidationError('Each answer must carry integer points')
            claimed += points
        if answers and claimed != total:
            current_app.logger.warning(f"[final-score] uid={uid} total={total} differs from answers sum={claimed}")
        profile = self.scores.submit_round1_total(uid, total, answers)
        current_app.logger.info(f"[final-score] uid={uid} round1={total} answers={len(answers)}")
        return profile

    # -- Round 2 ----------------------------------------------------------

    def press_buzzer(self, uid: str, response_time: int, question_number: Optional[int] = None):
        if isinstance(response_time, bool) or not isinstance(response_time, int) or response_time < 0:
            raise ValidationError('Response time must be a non-negative number of milliseconds')
        state = self.states.get()
        if not state.round2_active:
            raise StateError('Round 2 is not active')
        if not state.round2_buzzer_active:
            raise StateError('The buzzer is not active')
        if question_number is not None and question_number != state.current_question:
            raise StateError('That question is no longer open')
        profile = self.scores.require_profile(uid)
        if not profile.qualified:
            raise PermissionDenied('Only qualified teams can buzz in Round 2')
        response = self.buzzers.add(uid, state.current_question, response_time)
        current_app.logger.info(f"[buzz] uid={uid} q={state.current_question} t={response_time}ms")
        return response

    def score_buzzer_response(self, uid: str, question_number: int, points: int):
        if points not in BUZZER_POINT_MENU:
            raise ValidationError(f'Points must be one of {list(BUZZER_POINT_MENU)}')
        response = self.buzzers.find(uid, question_number)
        if response is None or response.scored:
            raise NotFound('No unscored buzzer response for this team and question')
        self.buzzers.mark_scored(response, points)
        profile = self.scores.add_points(uid, 2, points)
        current_app.logger.info(f"[buzz-score] uid={uid} q={question_number} points={points:+d}")
        return profile

    def buzzer_rankings(self, question_number: int):
        return self.buzzers.ranked(question_number)
