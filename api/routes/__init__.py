"""API routes package"""

from . import analysis, knowledge, intelligence, profile, sync, storage, health

__all__ = ["analysis", "knowledge", "intelligence", "profile", "sync", "storage", "health"]
