from runvault import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import uuid


def utcnow():
    return datetime.now(timezone.utc)

def generate_id():
    return str(uuid.uuid4())

def _isoformat(value):
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    username = db.Column(db.String(64), nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(256), nullable=True)
    is_anonymous_account = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
        }


class GameSave(db.Model):
    """One persisted run. At most one row per user may be active."""
    __tablename__ = 'game_saves'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    run_id = db.Column(db.String(36), nullable=False, default=generate_id)
    character_id = db.Column(db.String(64), nullable=False)
    # Client game state, stored and returned verbatim
    game_state = db.Column(db.JSON, nullable=False)
    floor_number = db.Column(db.Integer, nullable=False, default=0)
    current_gold = db.Column(db.Integer, nullable=False, default=0)
    max_floor_reached = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'run_id', name='uq_game_saves_user_run'),
        db.Index(
            'uq_game_saves_one_active_per_user',
            'user_id',
            unique=True,
            postgresql_where=db.text('is_active'),
            sqlite_where=db.text('is_active = 1'),
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'run_id': self.run_id,
            'character_id': self.character_id,
            'game_state': self.game_state,
            'floor_number': self.floor_number,
            'current_gold': self.current_gold,
            'max_floor_reached': self.max_floor_reached,
            'is_active': self.is_active,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }


class LeaderboardScore(db.Model):
    """Append-only score ledger. Rows are never updated."""
    __tablename__ = 'leaderboard_scores'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    # No FK to game_saves: deleting a run leaves its scores in place
    user_id = db.Column(db.String(36), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    character_id = db.Column(db.String(64), nullable=False, index=True)
    final_floor = db.Column(db.Integer, nullable=False)
    final_gold = db.Column(db.Integer, nullable=False)
    total_encounters = db.Column(db.Integer, nullable=False, default=0)
    run_duration_seconds = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    __table_args__ = (
        db.Index('ix_leaderboard_scores_rank', 'final_floor', 'final_gold'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'username': self.username,
            'character_id': self.character_id,
            'final_floor': self.final_floor,
            'final_gold': self.final_gold,
            'total_encounters': self.total_encounters,
            'run_duration_seconds': self.run_duration_seconds,
            'created_at': _isoformat(self.created_at),
        }
