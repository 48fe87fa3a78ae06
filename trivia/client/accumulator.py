import json
import logging
import os
import time
from typing import Callable, Optional

from trivia.client.errors import RemoteError
from trivia.services.game.scoring import round1_points
from trivia.services.game.timer import now_ms

logger = logging.getLogger(__name__)


class Round1Accumulator:
    """Round 1 answers kept on the participant's device until the round ends.

    The whole round costs one server write (see ``flush``). When a ``path``
    is given the state is rewritten there after every change and reloaded on
    start, so a crash or restart does not lose the round.
    """

    def __init__(self, path: Optional[str] = None, clock: Callable[[], int] = now_ms):
        self.path = path
        self.clock = clock
        self.answers = {}
        self.flushed = False
        self._load()

    @property
    def total(self) -> int:
        return sum(int(a.get('points', 0)) for a in self.answers.values())

    def answered(self, question_number: int) -> bool:
        entry = self.answers.get(str(question_number))
        return bool(entry and entry.get('isCorrect'))

    def record(self, question_number: int, answer: str, is_correct: bool, time_remaining: int) -> int:
        """Store one attempt and return the points it earned.

        A question already answered correctly is never overwritten.
        """
        if self.answered(question_number):
            raise ValueError(f'Question {question_number} already answered')
        points = round1_points(is_correct, time_remaining)
        self.answers[str(question_number)] = {
            'answer': answer,
            'isCorrect': bool(is_correct),
            'points': points,
            'timeRemaining': int(time_remaining),
            'timestamp': self.clock(),
        }
        self._save()
        return points

    def payload(self) -> dict:
        return {'totalScore': self.total, 'answers': dict(self.answers)}

    def flush(self, submit: Callable[[int, dict], object], retry_delay: float = 2,
              sleep: Callable[[float], None] = time.sleep) -> bool:
        """Send the round total once, retrying a single time after ``retry_delay``."""
        if self.flushed:
            return True
        for attempt in (1, 2):
            try:
                submit(self.total, dict(self.answers))
            except RemoteError as exc:
                logger.warning('final round 1 score submit failed (attempt %s): %s', attempt, exc)
                if attempt == 1:
                    sleep(retry_delay)
                continue
            self.flushed = True
            self._save()
            logger.info('final round 1 score submitted: %s points', self.total)
            return True
        logger.error('giving up on final round 1 score submit; %s points kept locally', self.total)
        return False

    def clear(self) -> None:
        self.answers = {}
        self.flushed = False
        self._save()

    # -- durable storage ---------------------------------------------------

    def _load(self) -> None:
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning('ignoring unreadable round 1 state at %s: %s', self.path, exc)
            return
        self.answers = data.get('answers') or {}
        self.flushed = bool(data.get('flushed'))
        logger.info('restored %s round 1 answers from %s', len(self.answers), self.path)

    def _save(self) -> None:
        if not self.path:
            return
        tmp_path = f'{self.path}.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as fh:
            json.dump({'answers': self.answers, 'flushed': self.flushed}, fh)
        os.replace(tmp_path, self.path)
