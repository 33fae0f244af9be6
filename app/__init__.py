"""
App package - Application configuration and core utilities.
Contains settings, exceptions, and the service context wiring.
"""

from app.config import settings
from app.exceptions import (
    LabelIQError,
    ServiceValidationError,
    NotFoundError,
    StorageError,
)

__all__ = [
    "settings",
    "LabelIQError",
    "ServiceValidationError",
    "NotFoundError",
    "StorageError",
]
