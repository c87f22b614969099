# backend/trainingdb/__init__.py
"""
Training compliance tracker.

The ORM models live in trainingdb/apps/training/models.py; importing them
here registers every table on Base.metadata for create_all() and Alembic.
"""

from .apps.training import models as training_models  # employees / templates / records

__all__ = [
    "training_models",
]
