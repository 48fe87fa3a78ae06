from trivia import db, bcrypt
from flask_login import UserMixin
import json
import uuid

GAME_STATE_ID = 'current'


def generate_uid():
    return uuid.uuid4().hex


class Account(UserMixin, db.Model):
    """Login credentials. Authentication only has to resolve to a stable uid."""
    __tablename__ = 'account'
    uid = db.Column(db.String(36), primary_key=True, default=generate_uid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    def get_id(self):
        return self.uid

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)


class UserProfile(db.Model):
    __tablename__ = 'users'
    # Integer key doubles as registration order, which keeps ranking ties stable
    id = db.Column(db.Integer, primary_key=True)
    uid = db.Column(db.String(36), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)
    team_name = db.Column(db.String(128), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False, index=True)
    round1_score = db.Column(db.Integer, default=0, nullable=False)
    round2_score = db.Column(db.Integer, default=0, nullable=False)
    total_score = db.Column(db.Integer, default=0, nullable=False)
    round1_rank = db.Column(db.Integer, nullable=True)
    round2_rank = db.Column(db.Integer, nullable=True)
    final_rank = db.Column(db.Integer, nullable=True)
    qualified = db.Column(db.Boolean, default=False, nullable=False)
    round1_completed = db.Column(db.Boolean, default=False, nullable=False)
    round1_answers = db.Column(db.Text, nullable=True)  # JSON-encoded map questionId -> answer audit
    created_at = db.Column(db.DateTime(timezone=True), server_default=db.func.now())
    last_active = db.Column(db.DateTime(timezone=True), server_default=db.func.now())
    last_updated = db.Column(db.DateTime(timezone=True), server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        try:
            answers = json.loads(self.round1_answers) if self.round1_answers else None
        except ValueError:
            answers = None
        return {
            'uid': self.uid,
            'email': self.email,
            'teamName': self.team_name,
            'isAdmin': self.is_admin,
            'round1Score': self.round1_score,
            'round2Score': self.round2_score,
            'totalScore': self.total_score,
            'round1Rank': self.round1_rank,
            'round2Rank': self.round2_rank,
            'finalRank': self.final_rank,
            'qualified': self.qualified,
            'round1Completed': self.round1_completed,
            'round1Answers': answers,
        }


class GameState(db.Model):
    """The single shared game document (id 'current')."""
    __tablename__ = 'game_state'
    id = db.Column(db.String(32), primary_key=True, default=GAME_STATE_ID)
    current_round = db.Column(db.Integer, default=1, nullable=False)
    round1_active = db.Column(db.Boolean, default=False, nullable=False)
    round2_active = db.Column(db.Boolean, default=False, nullable=False)
    game_started = db.Column(db.Boolean, default=False, nullable=False)
    game_ended = db.Column(db.Boolean, default=False, nullable=False)
    current_question = db.Column(db.Integer, default=1, nullable=False)
    round1_total_questions = db.Column(db.Integer, default=20, nullable=False)
    round2_total_questions = db.Column(db.Integer, default=15, nullable=False)
    timer_active = db.Column(db.Boolean, default=False, nullable=False)
    timer_start_time = db.Column(db.BigInteger, nullable=True)  # epoch ms
    timer_duration = db.Column(db.Integer, default=90, nullable=False)
    time_remaining = db.Column(db.Integer, default=90, nullable=True)
    round2_question_active = db.Column(db.Boolean, default=False, nullable=False)
    round2_buzzer_active = db.Column(db.Boolean, default=False, nullable=False)
    buzzer_start_time = db.Column(db.BigInteger, nullable=True)  # epoch ms
    qualified_count = db.Column(db.Integer, default=10, nullable=False)
    admin_uid = db.Column(db.String(36), nullable=True)
    last_updated = db.Column(db.DateTime(timezone=True), server_default=db.func.now(), onupdate=db.func.now())

    def total_questions(self, round_number):
        return self.round1_total_questions if round_number == 1 else self.round2_total_questions

    def to_dict(self):
        return {
            'currentRound': self.current_round,
            'round1Active': self.round1_active,
            'round2Active': self.round2_active,
            'gameStarted': self.game_started,
            'gameEnded': self.game_ended,
            'currentQuestion': self.current_question,
            'round1TotalQuestions': self.round1_total_questions,
            'round2TotalQuestions': self.round2_total_questions,
            'timerActive': self.timer_active,
            'timerStartTime': self.timer_start_time,
            'timerDuration': self.timer_duration,
            'timeRemaining': self.time_remaining,
            'round2QuestionActive': self.round2_question_active,
            'round2BuzzerActive': self.round2_buzzer_active,
            'buzzerStartTime': self.buzzer_start_time,
            'qualifiedCount': self.qualified_count,
            'adminUid': self.admin_uid,
            'lastUpdated': self.last_updated.isoformat() if self.last_updated else None,
        }


class AnswerRecord(db.Model):
    __tablename__ = 'answers'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.uid'), nullable=False, index=True)
    question_number = db.Column(db.Integer, nullable=False)
    answer = db.Column(db.String(255), nullable=False)
    round_number = db.Column(db.Integer, nullable=False, index=True)
    is_correct = db.Column(db.Boolean, default=False, nullable=False)
    points = db.Column(db.Integer, default=0, nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), server_default=db.func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'questionNumber': self.question_number,
            'answer': self.answer,
            'roundNumber': self.round_number,
            'isCorrect': self.is_correct,
            'points': self.points,
        }


class BuzzerResponse(db.Model):
    __tablename__ = 'buzzer_responses'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'question_number', name='uq_buzzer_user_question'),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.uid'), nullable=False)
    question_number = db.Column(db.Integer, nullable=False, index=True)
    response_time = db.Column(db.Integer, nullable=False)  # ms since buzzer activation, client measured
    scored = db.Column(db.Boolean, default=False, nullable=False)
    points = db.Column(db.Integer, default=0, nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), server_default=db.func.now())
    scored_at = db.Column(db.DateTime(timezone=True), nullable=True)

    profile = db.relationship('UserProfile')

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'teamName': self.profile.team_name if self.profile else None,
            'questionNumber': self.question_number,
            'responseTime': self.response_time,
            'scored': self.scored,
            'points': self.points,
        }
