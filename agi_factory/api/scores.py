"""Scores and leaderboard API endpoints."""
from flask import Blueprint, current_app, jsonify, request

from agi_factory.game_engine import GameEngine
from agi_factory.models import db, ActionRecord, GameSession, LeaderboardEntry
from agi_factory.persistence import DatabaseLeaderboard, PersistenceDispatcher

scores_bp = Blueprint('scores', __name__)

@scores_bp.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    """Get leaderboard: AGI achievers first, fastest first."""
    limit = request.args.get('limit', current_app.config['LEADERBOARD_DEFAULT_LIMIT'], type=int)
    offset = request.args.get('offset', 0, type=int)

    leaderboard = DatabaseLeaderboard()
    return jsonify({
        'entries': leaderboard.top(limit, offset),
        'total': LeaderboardEntry.query.count()
    })

@scores_bp.route('/submit', methods=['POST'])
def submit_score():
    """Submit a session's current result (once per session)."""
    data = request.get_json(silent=True)

    if not data or not data.get('session_id'):
        return jsonify({'error': 'Missing session_id'}), 400

    session = db.get_or_404(GameSession, data['session_id'])
    if LeaderboardEntry.query.filter_by(session_id=session.id).first():
        return jsonify({'error': 'Score already submitted for this session'}), 409

    persistence = PersistenceDispatcher(leaderboard=DatabaseLeaderboard(session.id))
    engine = GameEngine.load_from_session(session, persistence=persistence)
    entry = engine.submit_to_leaderboard(data.get('player_name') or session.player_name)
    if entry is None:
        return jsonify({'error': 'Score already submitted for this session'}), 409

    session.game_state = engine.get_state()
    db.session.commit()

    return jsonify({'entry': entry}), 201

@scores_bp.route('/actions/<int:session_id>', methods=['GET'])
def get_action_history(session_id):
    """Get the recorded player commands for a session."""
    session = db.get_or_404(GameSession, session_id)

    actions = ActionRecord.query.filter_by(session_id=session_id).order_by(
        ActionRecord.tick_number, ActionRecord.id
    ).all()

    return jsonify({
        'session': session.to_dict(),
        'actions': [action.to_dict() for action in actions]
    })
