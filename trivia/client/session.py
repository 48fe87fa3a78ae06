import logging
import time
from typing import Callable, Mapping, Optional

from trivia.services.game.timer import now_ms, remaining_seconds
from .accumulator import Round1Accumulator
from .countdown import Countdown
from .errors import ClientError

logger = logging.getLogger(__name__)


class ParticipantSession:
    """What one participant's device does in reaction to the live game.

    ``remote`` is anything offering ``validate_answer``,
    ``submit_final_round1_score`` and ``press_buzzer`` (see ``RemoteGame``).
    Push handlers become no-ops once the session is closed.
    """

    def __init__(self, remote, uid: str, accumulator: Optional[Round1Accumulator] = None,
                 countdown: Optional[Countdown] = None, clock: Callable[[], int] = now_ms,
                 retry_delay: float = 2, sleep: Callable[[float], None] = time.sleep):
        self.remote = remote
        self.uid = uid
        self.accumulator = accumulator or Round1Accumulator(clock=clock)
        self.countdown = countdown
        self.clock = clock
        self.retry_delay = retry_delay
        self.sleep = sleep

        self.state: Optional[Mapping] = None
        self.profile: Optional[Mapping] = None
        self.answered = False
        self.buzzer_opened_at: Optional[int] = None
        self.buzzed = False
        self.closed = False

    # -- pushes -------------------------------------------------------------

    def on_game_state(self, state: Mapping) -> None:
        if self.closed:
            return
        previous = self.state or {}
        self.state = state

        question = state.get('currentQuestion')
        if question != previous.get('currentQuestion') or state.get('currentRound') != previous.get('currentRound'):
            self.answered = self.accumulator.answered(question) if state.get('currentRound') == 1 else False
            self.buzzed = False
            self.buzzer_opened_at = None

        # Response times are measured from when this device saw the buzzer open
        if state.get('round2BuzzerActive') and not previous.get('round2BuzzerActive'):
            self.buzzer_opened_at = self.clock()
        elif not state.get('round2BuzzerActive'):
            self.buzzer_opened_at = None

        if self.countdown is not None:
            self.countdown.observe(state)

        if state.get('currentRound') == 2 and not state.get('round1Active') and not self.accumulator.flushed:
            self.flush_round1()

    def on_profile(self, profile: Mapping) -> None:
        if self.closed:
            return
        self.profile = profile

    def on_buzzer_responses(self, payload: Mapping) -> None:
        if self.closed or self.state is None:
            return
        if payload.get('questionNumber') != self.state.get('currentQuestion'):
            return
        # An empty list means the admin reset the buzzer
        self.buzzed = any(r.get('userId') == self.uid for r in payload.get('responses') or [])

    # -- actions ------------------------------------------------------------

    def time_remaining(self) -> int:
        if self.state is None:
            return 0
        return remaining_seconds(self.state, self.clock())

    def submit_answer(self, answer: str) -> dict:
        """Check an answer with the server and keep the result locally."""
        if self.closed:
            raise ClientError('Session is closed')
        if not (answer or '').strip():
            raise ClientError('Please enter an answer')
        if self.state is None or not self.state.get('round1Active'):
            raise ClientError('Round 1 is not active')
        question = self.state['currentQuestion']
        if self.answered or self.accumulator.answered(question):
            raise ClientError('You already answered this question')

        time_left = self.time_remaining()
        result = self.remote.validate_answer(question, answer.strip())
        points = self.accumulator.record(question, answer.strip(), result['isCorrect'], time_left)
        if result['isCorrect']:
            self.answered = True
        logger.info('question %s answered, correct=%s points=%s total=%s',
                    question, result['isCorrect'], points, self.accumulator.total)
        return {
            'isCorrect': result['isCorrect'],
            'correctAnswer': result.get('correctAnswer'),
            'points': points,
            'total': self.accumulator.total,
        }

    def flush_round1(self) -> bool:
        return self.accumulator.flush(self.remote.submit_final_round1_score,
                                      retry_delay=self.retry_delay, sleep=self.sleep)

    def press_buzzer(self) -> dict:
        if self.closed:
            raise ClientError('Session is closed')
        if self.state is None or not self.state.get('round2Active'):
            raise ClientError('Round 2 is not active')
        if not self.state.get('round2BuzzerActive') or self.buzzer_opened_at is None:
            raise ClientError('Buzzer is not active')
        if self.profile is not None and not self.profile.get('qualified'):
            raise ClientError('Only qualified teams can use the buzzer')
        if self.buzzed:
            raise ClientError('You already buzzed on this question')

        response_time = max(0, self.clock() - self.buzzer_opened_at)
        response = self.remote.press_buzzer(response_time, self.state['currentQuestion'])
        self.buzzed = True
        logger.info('buzzed on question %s in %sms', self.state['currentQuestion'], response_time)
        return response

    def close(self) -> None:
        self.closed = True
        if self.countdown is not None:
            self.countdown.close()
