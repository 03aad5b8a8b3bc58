#!/usr/bin/env python3
"""Run script for the AGI Factory game server."""
import os

from agi_factory.app import create_app

if __name__ == '__main__':
    app = create_app('development')

    # Initialize database
    with app.app_context():
        from agi_factory.models import db
        db.create_all()
        print("Database initialized.")

    port = int(os.environ.get('PORT', 5001))
    print("Starting AGI Factory game server...")
    print(f"API available at http://localhost:{port}/api/game")
    app.run(debug=True, host='0.0.0.0', port=port)
