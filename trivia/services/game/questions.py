import json
from typing import Optional

from trivia.errors import NotFound


class QuestionBank:
    """Round questions loaded once from a JSON file.

    Round 1 entries carry the answer key under ``word``; Round 2 entries are
    prompts read out by the admin and have no key.
    """

    def __init__(self, path: str):
        self.path = path
        self._data: Optional[dict] = None

    @property
    def data(self) -> dict:
        if self._data is None:
            with open(self.path, encoding='utf-8') as fh:
                self._data = json.load(fh)
        return self._data

    def round1(self, question_id: int) -> dict:
        for question in self.data.get('round1Questions', []):
            if question.get('id') == question_id:
                return question
        raise NotFound(f'Question {question_id} not found')

    def round2(self, question_id: int) -> dict:
        for question in self.data.get('round2Questions', []):
            if question.get('id') == question_id:
                return question
        raise NotFound(f'Question {question_id} not found')

    @staticmethod
    def public(question: dict) -> dict:
        """The question as shown to participants: the key is replaced by its length."""
        shown = {k: v for k, v in question.items() if k != 'word'}
        if 'word' in question:
            shown['letters'] = len(question['word'])
        return shown
