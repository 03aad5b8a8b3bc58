"""API blueprints for AGI Factory."""
from agi_factory.api.auth import auth_bp
from agi_factory.api.game import game_bp
from agi_factory.api.scores import scores_bp

__all__ = ['auth_bp', 'game_bp', 'scores_bp']
