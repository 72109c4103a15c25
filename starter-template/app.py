"""
Atelier Starter Template
========================

A ready-to-run Flask application serving the Atelier API.

Run with:
    python app.py

Visit:
    http://localhost:5000/api/health    - Health check
    http://localhost:5000/api/projects  - Public catalog
"""

import logging

from flask import Flask, jsonify
from atelier import Atelier

from config import Config


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # Registers auth, projects and ops
    Atelier(app)

    @app.route('/')
    def index():
        return jsonify({'name': 'Atelier', 'api': '/api/projects'})

    return app


# =============================================================================
# Run the app
# =============================================================================

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app = create_app()

    print("\n" + "=" * 60)
    print("Atelier Starter Template")
    print("=" * 60)
    print("Health:          http://localhost:5000/api/health")
    print("Catalog:         http://localhost:5000/api/projects")
    print("Register admin:  POST http://localhost:5000/api/auth/register")
    print("=" * 60 + "\n")

    app.run(host='0.0.0.0', port=5000, debug=True)
