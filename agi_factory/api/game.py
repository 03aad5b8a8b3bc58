"""Game API endpoints."""
from datetime import datetime

from flask import Blueprint, current_app, g, jsonify, request

from agi_factory.auth import login_optional
from agi_factory.errors import GameError, InvalidTransition
from agi_factory.game_data_loader import get_game_data_loader
from agi_factory.game_engine import GameEngine
from agi_factory.models import db, ActionRecord, GameSession, SavedGame
from agi_factory.persistence import DatabaseLeaderboard, DatabaseSnapshotSink, PersistenceDispatcher

game_bp = Blueprint('game', __name__)

def _load_session(session_id):
    """Fetch a session and check ownership. Returns (session, error_response)."""
    session = db.get_or_404(GameSession, session_id)
    user = getattr(g, 'current_user', None)
    if user and session.user_id and session.user_id != user.id:
        return session, (jsonify({'error': 'Unauthorized'}), 403)
    return session, None

def _load_engine(session):
    """Engine wired to the database snapshot sink and leaderboard."""
    persistence = PersistenceDispatcher(
        snapshot_sink=DatabaseSnapshotSink(session.id),
        leaderboard=DatabaseLeaderboard(session.id)
    )
    return GameEngine.load_from_session(session, persistence=persistence)

def _store(session, engine):
    """Write the engine state back to the session and commit."""
    game_state = engine.get_state()
    session.game_state = game_state
    if engine.state.agi_achieved and session.completed_at is None:
        session.completed_at = datetime.utcnow()
    db.session.commit()
    return game_state

def _drain_events(engine):
    return [{'name': name, 'payload': payload} for name, payload in engine.events.drain_history()]

def _error_response(e):
    status = 409 if isinstance(e, InvalidTransition) else 400
    return jsonify(e.to_dict()), status

def _require_session_id(data):
    if not data or not data.get('session_id'):
        return jsonify({'error': 'Missing session_id'}), 400
    return None

@game_bp.route('/start', methods=['POST'])
@login_optional
def start_game():
    """Start a new game session (guest mode allowed)."""
    data = request.get_json(silent=True) or {}
    config = dict(data.get('config') or {})
    player_name = data.get('player_name')

    user_id = None
    if g.current_user:
        user_id = g.current_user.id
        player_name = player_name or g.current_user.username
    if player_name:
        config['player_name'] = player_name

    session = GameSession(user_id=user_id, player_name=player_name, game_config=config)
    db.session.add(session)
    db.session.commit()

    try:
        engine = _load_engine(session)
    except ValueError as e:
        db.session.delete(session)
        db.session.commit()
        return jsonify({'error': str(e)}), 400
    if data.get('running'):
        engine.start()
    game_state = _store(session, engine)
    current_app.logger.info("Started game session %s", session.id)

    return jsonify({
        'session_id': session.id,
        'game_state': game_state
    }), 201

@game_bp.route('/state/<int:session_id>', methods=['GET'])
@login_optional
def get_game_state(session_id):
    """Get current game state (guest mode allowed)."""
    session, error = _load_session(session_id)
    if error:
        return error

    engine = _load_engine(session)
    return jsonify({'game_state': engine.get_state()})

@game_bp.route('/action', methods=['POST'])
@login_optional
def game_action():
    """Perform a player command against the session's engine."""
    data = request.get_json(silent=True)
    error = _require_session_id(data)
    if error:
        return error
    action_type = data.get('action_type')
    if not action_type:
        return jsonify({'error': 'Missing action_type'}), 400
    action_data = data.get('action_data') or {}

    session, error = _load_session(data['session_id'])
    if error:
        return error
    engine = _load_engine(session)

    record = ActionRecord(
        session_id=session.id,
        action_type=action_type,
        action_data=action_data,
        timestamp=engine.get_time(),
        tick_number=engine.state.tick_count
    )
    try:
        result = engine.perform_action(action_type, action_data)
    except GameError as e:
        record.succeeded = False
        db.session.add(record)
        db.session.commit()
        return _error_response(e)
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    record.succeeded = True
    db.session.add(record)
    game_state = _store(session, engine)

    return jsonify({
        'success': True,
        'result': result,
        'events': _drain_events(engine),
        'game_state': game_state
    })

@game_bp.route('/tick', methods=['POST'])
@login_optional
def tick_game():
    """Advance the simulation by ``seconds`` of game time.

    ``running`` starts or pauses the clock first; a paused game does not move.
    """
    data = request.get_json(silent=True)
    error = _require_session_id(data)
    if error:
        return error

    session, error = _load_session(data['session_id'])
    if error:
        return error
    engine = _load_engine(session)

    seconds = data.get('seconds', engine.tick_interval)
    try:
        seconds = float(seconds)
    except (TypeError, ValueError):
        return jsonify({'error': 'seconds must be a number'}), 400
    max_seconds = current_app.config['MAX_TICK_SECONDS']
    if seconds < 0 or seconds > max_seconds:
        return jsonify({'error': f'seconds must be between 0 and {max_seconds}'}), 400

    if 'running' in data:
        if data['running']:
            engine.start()
        else:
            engine.pause()

    ticks = engine.advance(seconds)
    game_state = _store(session, engine)

    return jsonify({
        'ticks': ticks,
        'events': _drain_events(engine),
        'game_state': game_state
    })

@game_bp.route('/reset', methods=['POST'])
@login_optional
def reset_game():
    """Reset the session to a fresh game."""
    data = request.get_json(silent=True)
    error = _require_session_id(data)
    if error:
        return error

    session, error = _load_session(data['session_id'])
    if error:
        return error
    engine = _load_engine(session)
    engine.reset()
    session.completed_at = None
    game_state = _store(session, engine)

    return jsonify({'success': True, 'game_state': game_state})

@game_bp.route('/save', methods=['POST'])
@login_optional
def save_game():
    """Write a compact snapshot of the session now."""
    data = request.get_json(silent=True)
    error = _require_session_id(data)
    if error:
        return error

    session, error = _load_session(data['session_id'])
    if error:
        return error
    engine = _load_engine(session)

    saved = engine.save_snapshot()
    _store(session, engine)
    if saved is None:
        return jsonify({'error': 'Snapshot could not be saved'}), 500

    return jsonify({'success': True, 'saved_game': saved.to_dict()}), 201

@game_bp.route('/saves/<int:session_id>', methods=['GET'])
@login_optional
def list_saves(session_id):
    """List snapshots for a session, newest first."""
    session, error = _load_session(session_id)
    if error:
        return error

    saves = SavedGame.query.filter_by(session_id=session.id).order_by(
        SavedGame.created_at.desc(), SavedGame.id.desc()
    ).all()
    return jsonify({'saves': [save.to_dict() for save in saves]})

@game_bp.route('/load', methods=['POST'])
@login_optional
def load_save():
    """Restore a session from one of its snapshots."""
    data = request.get_json(silent=True)
    error = _require_session_id(data)
    if error:
        return error
    if not data.get('save_id'):
        return jsonify({'error': 'Missing save_id'}), 400

    session, error = _load_session(data['session_id'])
    if error:
        return error
    saved = db.get_or_404(SavedGame, data['save_id'])
    if saved.session_id != session.id:
        return jsonify({'error': 'Save belongs to another session'}), 400

    engine = GameEngine.from_snapshot(
        saved.to_snapshot(),
        session.id,
        dict(session.game_config or {}),
        persistence=PersistenceDispatcher(DatabaseSnapshotSink(session.id), DatabaseLeaderboard(session.id))
    )
    game_state = _store(session, engine)
    return jsonify({'success': True, 'game_state': game_state})

@game_bp.route('/complete', methods=['POST'])
@login_optional
def complete_game():
    """Mark a session complete and submit it to the leaderboard once."""
    data = request.get_json(silent=True)
    error = _require_session_id(data)
    if error:
        return error

    session, error = _load_session(data['session_id'])
    if error:
        return error
    engine = _load_engine(session)
    engine.pause()

    player_name = data.get('player_name') or session.player_name
    entry = engine.submit_to_leaderboard(player_name)
    if session.completed_at is None:
        session.completed_at = datetime.utcnow()
    _store(session, engine)

    return jsonify({
        'session': session.to_dict(),
        'leaderboard_entry': entry,
        'already_submitted': entry is None
    })

@game_bp.route('/breakthroughs', methods=['GET'])
def get_breakthroughs():
    """Breakthrough catalog in unlock order."""
    return jsonify({'breakthroughs': get_game_data_loader().load_breakthroughs()})
