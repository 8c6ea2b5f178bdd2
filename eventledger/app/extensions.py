"""
extensions.py — Flask extension singletons.

SQLAlchemy and marshmallow are created here with no app attached, then bound
inside create_app() via init_app(). Import them from here wherever needed:

    from eventledger.app.extensions import db, ma

Never pass the app to SQLAlchemy() or Marshmallow() at import time; the
integration tests build their own app instance.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_marshmallow import Marshmallow

db = SQLAlchemy()

# Validation schemas in app/schemas/ inherit from marshmallow.Schema, NOT
# ma.Schema: ma.Schema needs an application context and the unit tests run
# without one.
ma = Marshmallow()
