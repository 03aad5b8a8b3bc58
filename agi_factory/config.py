"""Configuration settings for the Flask application."""
import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        os.environ.get('SQLALCHEMY_DATABASE_URI') or \
        'sqlite:///agi_factory.db'  # Use SQLite for development

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Simulation clock
    # The engine advances in fixed steps of TICK_INTERVAL seconds (10 ticks per second)
    TICK_INTERVAL = 0.1  # seconds
    SNAPSHOT_INTERVAL = 30  # seconds of game time between best-effort snapshots
    MAX_TICK_SECONDS = 600  # upper bound for a single /tick request

    # Game configuration
    # FALLBACK values - primary source is game_data/economic_rules.json
    AGI_THRESHOLD = 1000  # intelligence needed to win
    INITIAL_MONEY = 1000  # starting capital
    INITIAL_INTELLIGENCE = 100
    MAX_LEVEL = 5  # per resource level cap

    # Leaderboard
    LEADERBOARD_DEFAULT_LIMIT = 10

class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True

class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False

class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
