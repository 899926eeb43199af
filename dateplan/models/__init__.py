"""
Date Elimination Service
SQLAlchemy extension instance shared by every model module.

Usage:
    from dateplan.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
