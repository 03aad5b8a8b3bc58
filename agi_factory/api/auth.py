"""Authentication API endpoints.

Games can be played as a guest. Registering or logging in with a
``session_id`` claims that guest session for the account so the run and its
leaderboard entry are attributed to the player.
"""
from flask import Blueprint, request, jsonify, g
from agi_factory.models import db, User, GameSession, LeaderboardEntry
from agi_factory.auth import generate_token, login_required

auth_bp = Blueprint('auth', __name__)

def _guest_session(session_id, user=None):
    """Look up a session the caller may claim; returns (session, error_response)."""
    if session_id is None:
        return None, None
    session = db.session.get(GameSession, session_id)
    if not session:
        return None, (jsonify({'error': 'Session not found'}), 404)
    if session.user_id is not None and (user is None or session.user_id != user.id):
        return None, (jsonify({'error': 'Session belongs to another player'}), 403)
    return session, None

def _claim(user, session):
    session.user_id = user.id
    if not session.player_name:
        session.player_name = user.username

def _run_summary(session):
    """Progress of one run, read from its stored engine state."""
    state = session.game_state or {}
    data = session.to_dict()
    data.update({
        'current_era': state.get('current_era'),
        'intelligence': state.get('intelligence'),
        'time_elapsed': state.get('time_elapsed', 0),
        'agi_achieved': state.get('agi_achieved', False)
    })
    return data

@auth_bp.route('/register', methods=['POST'])
def register():
    """Register a new user, optionally claiming a guest session."""
    data = request.get_json(silent=True)

    if not data or not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Missing required fields'}), 400

    # Check if user exists
    if User.query.filter_by(username=data['username']).first():
        return jsonify({'error': 'Username already exists'}), 400

    email = data.get('email')
    if email and User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already exists'}), 400

    session, error = _guest_session(data.get('session_id'))
    if error:
        return error

    user = User(username=data['username'], email=email)
    user.set_password(data['password'])
    db.session.add(user)
    db.session.flush()
    if session:
        _claim(user, session)
    db.session.commit()

    return jsonify({
        'token': generate_token(user),
        'user': user.to_dict(),
        'claimed_session_id': session.id if session else None
    }), 201

@auth_bp.route('/login', methods=['POST'])
def login():
    """Login user and return token, optionally claiming a guest session."""
    data = request.get_json(silent=True)

    if not data or not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Missing username or password'}), 400

    user = User.query.filter_by(username=data['username']).first()

    if not user or not user.check_password(data['password']):
        return jsonify({'error': 'Invalid credentials'}), 401

    session, error = _guest_session(data.get('session_id'), user)
    if error:
        return error
    if session:
        _claim(user, session)
        db.session.commit()

    return jsonify({
        'token': generate_token(user),
        'user': user.to_dict(),
        'claimed_session_id': session.id if session else None
    })

@auth_bp.route('/me', methods=['GET'])
@login_required
def get_current_user_info():
    """Get the current player with their runs and best leaderboard placing."""
    user = g.current_user
    sessions = sorted(user.sessions, key=lambda s: s.started_at, reverse=True)
    session_ids = [s.id for s in sessions]

    best = None
    if session_ids:
        best = LeaderboardEntry.ranked().filter(LeaderboardEntry.session_id.in_(session_ids)).first()

    return jsonify({
        'user': user.to_dict(),
        'sessions': [_run_summary(s) for s in sessions],
        'completed_runs': sum(1 for s in sessions if s.completed_at is not None),
        'best_entry': best.to_dict() if best else None
    })
