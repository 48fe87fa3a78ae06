"""Persistence for the shared game documents.

Each repository wraps the SQLAlchemy session for one concern. A method is
one commit (one atomic write), after which the changed documents are pushed
to subscribers through the Publisher.
"""
import json
from typing import Iterable, List, Optional

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import IntegrityError

from trivia.errors import Conflict, NotFound
from trivia.models import GAME_STATE_ID, AnswerRecord, BuzzerResponse, GameState, UserProfile
from .notify import Publisher

_STATE_FIELDS = {c.key for c in GameState.__table__.columns} - {'id', 'last_updated'}


def _execute(session, stmt):
    # Every write commits straight away, which expires the identity map anyway
    return session.execute(stmt.execution_options(synchronize_session=False))


class GameStateRepository:

    def __init__(self, db, publisher: Publisher, defaults: Optional[dict] = None):
        self.db = db
        self.publisher = publisher
        self.defaults = dict(defaults or {})
        # Committed writes to the game document, including creation
        self.writes = 0

    def find(self) -> Optional[GameState]:
        return self.db.session.get(GameState, GAME_STATE_ID)

    def get(self) -> GameState:
        state = self.find()
        if state is None:
            raise NotFound('Game state not found')
        return state

    def ensure(self) -> GameState:
        """Create the document with defaults if absent. Safe to race."""
        state = self.find()
        if state is not None:
            return state
        state = GameState(id=GAME_STATE_ID, **self.defaults)
        self.db.session.add(state)
        try:
            self.db.session.commit()
        except IntegrityError:
            # Another client created it between our read and insert
            self.db.session.rollback()
            return self.get()
        self.writes += 1
        current_app.logger.info('[game-state] created with defaults')
        self.publisher.game_state(state.to_dict())
        return state

    def update(self, **fields) -> GameState:
        """Atomic partial update; fails if the document is absent."""
        return self._write(None, fields)

    def compare_and_update(self, expected: dict, **fields) -> GameState:
        """Apply ``fields`` only if every ``expected`` field still holds its value."""
        return self._write(expected, fields)

    def _write(self, expected: Optional[dict], fields: dict) -> GameState:
        unknown = (set(fields) | set(expected or {})) - _STATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown game state fields: {sorted(unknown)}")
        stmt = sa.update(GameState).where(GameState.id == GAME_STATE_ID)
        for name, value in (expected or {}).items():
            stmt = stmt.where(getattr(GameState, name) == value)
        stmt = stmt.values(last_updated=sa.func.now(), **fields)
        result = _execute(self.db.session, stmt)
        if result.rowcount != 1:
            self.db.session.rollback()
            if expected and self.find() is not None:
                raise Conflict('The game state changed while you were editing it, refresh and retry')
            raise NotFound('Game state not found')
        self.db.session.commit()
        self.writes += 1
        state = self.get()
        self.db.session.refresh(state)
        self.publisher.game_state(state.to_dict())
        return state


class ScoreRepository:
    """User profiles and the append-only answer log."""

    def __init__(self, db, publisher: Publisher):
        self.db = db
        self.publisher = publisher

    # -- profiles ---------------------------------------------------------

    def profile(self, uid: str) -> Optional[UserProfile]:
        return UserProfile.query.filter_by(uid=uid).first()

    def require_profile(self, uid: str) -> UserProfile:
        profile = self.profile(uid)
        if profile is None:
            raise NotFound('User profile not found')
        return profile

    def ensure_profile(self, uid: str, email: str, team_name: Optional[str] = None, is_admin: bool = False) -> UserProfile:
        """Create the profile on first login, otherwise mark it active."""
        profile = self.profile(uid)
        if profile is None:
            profile = UserProfile(
                uid=uid,
                email=email,
                team_name=team_name or (email.split('@')[0] or 'Team'),
                is_admin=is_admin,
            )
            self.db.session.add(profile)
            try:
                self.db.session.commit()
            except IntegrityError:
                self.db.session.rollback()
                return self.require_profile(uid)
            current_app.logger.info(f"[profile] created uid={uid} team={profile.team_name}")
            return profile
        profile.last_active = sa.func.now()
        self.db.session.commit()
        return profile

    def participants(self, *order_by) -> List[UserProfile]:
        """Non-admin profiles; ties in ``order_by`` keep registration order."""
        return (
            UserProfile.query
            .filter(UserProfile.is_admin.is_(False))
            .order_by(*order_by, UserProfile.id.asc())
            .all()
        )

    def leaderboard(self) -> List[UserProfile]:
        return self.participants(UserProfile.total_score.desc())

    def add_points(self, uid: str, round_number: int, points: int) -> UserProfile:
        column = UserProfile.round1_score if round_number == 1 else UserProfile.round2_score
        where = UserProfile.uid == uid
        result = _execute(
            self.db.session,
            sa.update(UserProfile).where(where).values({column: column + points})
        )
        if result.rowcount != 1:
            self.db.session.rollback()
            raise NotFound('User profile not found')
        self._recompute_totals(where)
        self.db.session.commit()
        return self._published(uid)

    def submit_round1_total(self, uid: str, total: int, answers: dict) -> UserProfile:
        where = UserProfile.uid == uid
        result = _execute(
            self.db.session,
            sa.update(UserProfile).where(where).values(
                round1_score=total,
                round1_answers=json.dumps(answers),
                round1_completed=True,
            )
        )
        if result.rowcount != 1:
            self.db.session.rollback()
            raise NotFound('User profile not found')
        self._recompute_totals(where)
        self.db.session.commit()
        return self._published(uid)

    def assign(self, assignments: dict) -> None:
        """Write per-user field sets, keyed by uid, in one commit."""
        for uid, fields in assignments.items():
            _execute(
                self.db.session,
                sa.update(UserProfile).where(UserProfile.uid == uid).values(**fields)
            )
        self.db.session.commit()
        self._publish_all(assignments.keys())

    def reset_participants(self, **fields) -> int:
        """Apply ``fields`` to every non-admin profile and recompute totals."""
        where = UserProfile.is_admin.is_(False)
        result = _execute(self.db.session, sa.update(UserProfile).where(where).values(**fields))
        self._recompute_totals(where)
        self.db.session.commit()
        self._publish_all(p.uid for p in self.participants())
        return result.rowcount

    def _recompute_totals(self, where) -> None:
        _execute(
            self.db.session,
            sa.update(UserProfile).where(where).values(
                total_score=UserProfile.round1_score + UserProfile.round2_score
            )
        )

    def _published(self, uid: str) -> UserProfile:
        profile = self.require_profile(uid)
        self.db.session.refresh(profile)
        self.publisher.profile(profile.to_dict())
        self.publisher.leaderboard([p.to_dict() for p in self.leaderboard()])
        return profile

    def _publish_all(self, uids: Iterable[str]) -> None:
        wanted = set(uids)
        board = self.leaderboard()
        for profile in board:
            if profile.uid in wanted:
                self.publisher.profile(profile.to_dict())
        self.publisher.leaderboard([p.to_dict() for p in board])

    # -- answers ----------------------------------------------------------

    def add_answer(self, uid: str, question_number: int, answer: str, round_number: int,
                   is_correct: bool, points: int) -> AnswerRecord:
        record = AnswerRecord(
            user_id=uid,
            question_number=question_number,
            answer=answer,
            round_number=round_number,
            is_correct=is_correct,
            points=points,
        )
        self.db.session.add(record)
        self.db.session.commit()
        return record

    def answers(self, round_number: Optional[int] = None) -> List[AnswerRecord]:
        q = AnswerRecord.query
        if round_number is not None:
            q = q.filter_by(round_number=round_number)
        return q.order_by(AnswerRecord.id.asc()).all()

    def has_correct_answer(self, uid: str, round_number: int, question_number: int) -> bool:
        return AnswerRecord.query.filter_by(
            user_id=uid, round_number=round_number, question_number=question_number, is_correct=True
        ).first() is not None

    def delete_answers(self, round_number: Optional[int] = None) -> int:
        stmt = sa.delete(AnswerRecord)
        if round_number is not None:
            stmt = stmt.where(AnswerRecord.round_number == round_number)
        result = _execute(self.db.session, stmt)
        self.db.session.commit()
        return result.rowcount


class BuzzerRepository:

    def __init__(self, db, publisher: Publisher):
        self.db = db
        self.publisher = publisher

    def ranked(self, question_number: int) -> List[BuzzerResponse]:
        """Fastest first; equal times keep insertion order."""
        return (
            BuzzerResponse.query
            .filter_by(question_number=question_number)
            .order_by(BuzzerResponse.response_time.asc(), BuzzerResponse.id.asc())
            .all()
        )

    def find(self, uid: str, question_number: int) -> Optional[BuzzerResponse]:
        return BuzzerResponse.query.filter_by(user_id=uid, question_number=question_number).first()

    def add(self, uid: str, question_number: int, response_time: int) -> BuzzerResponse:
        if self.find(uid, question_number) is not None:
            raise Conflict('You have already buzzed for this question')
        response = BuzzerResponse(user_id=uid, question_number=question_number, response_time=response_time)
        self.db.session.add(response)
        try:
            self.db.session.commit()
        except IntegrityError:
            # A near-simultaneous second press lost the race on the unique key
            self.db.session.rollback()
            raise Conflict('You have already buzzed for this question')
        self._publish(question_number)
        return response

    def mark_scored(self, response: BuzzerResponse, points: int) -> BuzzerResponse:
        result = _execute(
            self.db.session,
            sa.update(BuzzerResponse)
            .where(BuzzerResponse.id == response.id, BuzzerResponse.scored.is_(False))
            .values(scored=True, points=points, scored_at=sa.func.now())
        )
        if result.rowcount != 1:
            self.db.session.rollback()
            raise Conflict('This buzzer response has already been scored')
        self.db.session.commit()
        self.db.session.refresh(response)
        self._publish(response.question_number)
        return response

    def delete(self, question_number: Optional[int] = None) -> int:
        """Purge responses of one question, or all of them."""
        if question_number is None:
            affected = [q for (q,) in self.db.session.query(BuzzerResponse.question_number).distinct()]
        else:
            affected = [question_number]
        stmt = sa.delete(BuzzerResponse)
        if question_number is not None:
            stmt = stmt.where(BuzzerResponse.question_number == question_number)
        result = _execute(self.db.session, stmt)
        self.db.session.commit()
        for q in affected:
            self.publisher.buzzer_responses(q, [])
        return result.rowcount

    def _publish(self, question_number: int) -> None:
        self.publisher.buzzer_responses(question_number, [r.to_dict() for r in self.ranked(question_number)])
