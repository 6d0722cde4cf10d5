"""
Intake Links Backend - Services Module

Business logic layer.
"""

from app.services import intake_service

__all__ = ["intake_service"]
