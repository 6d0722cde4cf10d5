"""
Intake Links Backend - Models Module

This module exports all SQLAlchemy models for the application.
"""

from app.core.database import Base

from app.models.patient import Patient

__all__ = [
    "Base",
    "Patient",
]
