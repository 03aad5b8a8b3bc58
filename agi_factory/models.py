"""Database models for the game."""
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt

db = SQLAlchemy()
bcrypt = Bcrypt()

class User(db.Model):
    """Player account used to attribute sessions and leaderboard entries."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    sessions = db.relationship('GameSession', backref='user', lazy=True, cascade='all, delete-orphan')

    def set_password(self, password):
        """Hash and set password."""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        """Check password against hash."""
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'created_at': self.created_at.isoformat()
        }

class GameSession(db.Model):
    """Game session model holding the full engine state."""
    __tablename__ = 'game_sessions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)  # Allow guest sessions
    player_name = db.Column(db.String(80), nullable=True)
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    game_config = db.Column(db.JSON, default=dict)  # Per-session overrides
    game_state = db.Column(db.JSON, default=dict)  # Full game state

    # Relationships
    actions = db.relationship('ActionRecord', backref='session', lazy=True, cascade='all, delete-orphan', order_by='ActionRecord.tick_number')
    saved_games = db.relationship('SavedGame', backref='session', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'player_name': self.player_name,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'game_config': self.game_config
        }

class ActionRecord(db.Model):
    """Player commands applied to a session, in tick order."""
    __tablename__ = 'action_records'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_sessions.id'), nullable=False, index=True)
    action_type = db.Column(db.String(50), nullable=False)  # allocate_money, set_revenue_stream, start_training, ...
    action_data = db.Column(db.JSON, nullable=False)
    succeeded = db.Column(db.Boolean, nullable=False, default=True)
    timestamp = db.Column(db.Float, nullable=False)  # game seconds
    tick_number = db.Column(db.Integer, nullable=False, index=True)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'session_id': self.session_id,
            'action_type': self.action_type,
            'action_data': self.action_data,
            'succeeded': self.succeeded,
            'timestamp': self.timestamp,
            'tick_number': self.tick_number
        }

class SavedGame(db.Model):
    """Compact best-effort snapshot pushed by the engine."""
    __tablename__ = 'saved_games'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_sessions.id'), nullable=True, index=True)
    intelligence = db.Column(db.Float, nullable=False)
    money = db.Column(db.Float, nullable=False)
    time_elapsed = db.Column(db.Integer, nullable=False)  # seconds
    resources = db.Column(db.JSON, nullable=False)
    levels = db.Column(db.JSON, nullable=False)
    revenue_b2b = db.Column(db.Float, default=0.0)
    revenue_b2c = db.Column(db.Float, default=0.0)
    revenue_investors = db.Column(db.Float, default=0.0)
    unlocked_breakthroughs = db.Column(db.JSON, nullable=False)
    current_era = db.Column(db.String(10), nullable=False, default='GNT-2')
    agi_achieved = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    @classmethod
    def from_snapshot(cls, snapshot, session_id=None):
        """Build a row from GameEngine.snapshot()."""
        revenue = snapshot.get('revenue', {})
        return cls(
            session_id=session_id,
            intelligence=snapshot['intelligence'],
            money=snapshot['money'],
            time_elapsed=snapshot['time_elapsed'],
            resources=snapshot['resources'],
            levels=snapshot['levels'],
            revenue_b2b=revenue.get('b2b', 0.0),
            revenue_b2c=revenue.get('b2c', 0.0),
            revenue_investors=revenue.get('investors', 0.0),
            unlocked_breakthroughs=snapshot['unlocked_breakthroughs'],
            current_era=snapshot.get('current_era', 'GNT-2'),
            agi_achieved=snapshot.get('agi_achieved', False)
        )

    def to_snapshot(self):
        """Convert back to the engine snapshot shape."""
        return {
            'intelligence': self.intelligence,
            'money': self.money,
            'time_elapsed': self.time_elapsed,
            'resources': self.resources,
            'levels': self.levels,
            'revenue': {
                'b2b': self.revenue_b2b,
                'b2c': self.revenue_b2c,
                'investors': self.revenue_investors
            },
            'unlocked_breakthroughs': self.unlocked_breakthroughs,
            'current_era': self.current_era,
            'agi_achieved': self.agi_achieved
        }

    def to_dict(self):
        """Convert to dictionary."""
        data = self.to_snapshot()
        data.update({
            'id': self.id,
            'session_id': self.session_id,
            'created_at': self.created_at.isoformat()
        })
        return data

class LeaderboardEntry(db.Model):
    """Leaderboard record written once when a run reaches AGI."""
    __tablename__ = 'leaderboard'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_sessions.id'), nullable=True, unique=True, index=True)
    player_name = db.Column(db.String(80), nullable=False)
    final_intelligence = db.Column(db.Float, nullable=False)
    total_time_elapsed = db.Column(db.Integer, nullable=False, index=True)  # seconds
    peak_money = db.Column(db.Float, nullable=False)
    total_money_earned = db.Column(db.Float, nullable=False, default=0.0)
    peak_b2b_subscribers = db.Column(db.Float, nullable=False, default=0.0)
    peak_b2c_subscribers = db.Column(db.Float, nullable=False, default=0.0)
    breakthroughs_unlocked = db.Column(db.Integer, nullable=False)
    eras_reached = db.Column(db.Integer, nullable=False)
    has_achieved_agi = db.Column(db.Boolean, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    FIELDS = (
        'player_name', 'final_intelligence', 'total_time_elapsed', 'peak_money',
        'total_money_earned', 'peak_b2b_subscribers', 'peak_b2c_subscribers',
        'breakthroughs_unlocked', 'eras_reached', 'has_achieved_agi'
    )

    @classmethod
    def ranked(cls):
        """AGI achievers first, then fastest, then smartest."""
        return cls.query.order_by(
            cls.has_achieved_agi.desc(),
            cls.total_time_elapsed.asc(),
            cls.final_intelligence.desc()
        )

    def to_dict(self):
        """Convert to dictionary."""
        data = {name: getattr(self, name) for name in self.FIELDS}
        data.update({
            'id': self.id,
            'session_id': self.session_id,
            'created_at': self.created_at.isoformat()
        })
        return data
