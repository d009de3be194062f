"""
Store Metadata Model

Key-value storage for store-wide metadata, including the schema version stamp.
"""

from .base import db

VERSION_KEY = 'version'


class StoreMetadata(db.Model):
    """Key-value storage for store metadata."""
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(50), unique=True, nullable=False)
    value = db.Column(db.String(200))
