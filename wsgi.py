"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db upgrade
    flask db migrate -m "description"
    gunicorn wsgi:app
"""

from dateplan import create_app

app = create_app()
