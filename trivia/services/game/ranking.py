from typing import Iterable, List, Optional

from flask import current_app

from trivia.models import GameState, UserProfile
from .repositories import GameStateRepository, ScoreRepository


class RankingEngine:
    """Standings and Round 2 qualification.

    Every pass recomputes from the stored scores, so rerunning one after a
    partial failure is safe. Equal scores keep registration order.
    """

    def __init__(self, states: GameStateRepository, scores: ScoreRepository,
                 default_qualified: int = 10, qualified_cap: int = 15):
        self.states = states
        self.scores = scores
        self.default_qualified = default_qualified
        self.qualified_cap = qualified_cap

    def qualified_count(self, state: Optional[GameState] = None) -> int:
        if state is None:
            state = self.states.find()
        wanted = (state.qualified_count if state is not None else None) or self.default_qualified
        return min(wanted, self.qualified_cap)

    def calculate_round1_rankings(self) -> List[UserProfile]:
        users = self.scores.participants(UserProfile.round1_score.desc())
        count = self.qualified_count()
        self.scores.assign({
            user.uid: {'round1_rank': rank, 'qualified': rank <= count}
            for rank, user in enumerate(users, start=1)
        })
        current_app.logger.info(f"[rankings] round1 ranked={len(users)} qualified={min(count, len(users))}")
        return users[:count]

    def update_qualified_users(self, qualified_uids: Iterable[str]) -> None:
        wanted = set(qualified_uids)
        self.scores.assign({
            user.uid: {'qualified': user.uid in wanted}
            for user in self.scores.participants()
        })
        current_app.logger.info(f"[rankings] qualified set to {len(wanted)} teams")

    def top_qualifiers(self) -> List[UserProfile]:
        """Teams with a positive Round 1 score, best first, up to the qualified count."""
        users = self.scores.participants(UserProfile.round1_score.desc())
        return [u for u in users if u.round1_score > 0][:self.qualified_count()]

    def calculate_final_rankings(self) -> List[UserProfile]:
        overall = self.scores.participants(UserProfile.total_score.desc())
        finalists = [u for u in self.scores.participants(UserProfile.round2_score.desc()) if u.qualified]
        round2_ranks = {u.uid: rank for rank, u in enumerate(finalists, start=1)}
        self.scores.assign({
            user.uid: {'final_rank': rank, 'round2_rank': round2_ranks.get(user.uid)}
            for rank, user in enumerate(overall, start=1)
        })
        current_app.logger.info(f"[rankings] final ranked={len(overall)} finalists={len(finalists)}")
        return overall

    def leaderboard(self) -> List[UserProfile]:
        return self.scores.leaderboard()
