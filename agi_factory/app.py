"""Flask application entry point."""
import logging
import os

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_migrate import Migrate

from agi_factory.config import config
from agi_factory.models import db, bcrypt
from agi_factory.game_data_loader import get_game_data_loader

def create_app(config_name=None):
    """Create and configure Flask application."""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')
    app.config.from_object(config[config_name])

    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('agi_factory').setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    CORS(app)
    Migrate(app, db)

    # Initialize game data loader
    data_loader = get_game_data_loader()
    errors = data_loader.validate_data()
    if errors:
        app.logger.warning(f"Game data validation warnings: {errors}")

    # Register blueprints
    from agi_factory.api import auth_bp, game_bp, scores_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(game_bp, url_prefix='/api/game')
    app.register_blueprint(scores_bp, url_prefix='/api/scores')

    # Serve game data files
    @app.route('/game_data/<path:filename>')
    def serve_game_data(filename):
        """Serve game data JSON files."""
        return send_from_directory(data_loader.data_dir, filename)

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return {'error': 'Internal server error'}, 500

    return app
