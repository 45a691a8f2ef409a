#!/usr/bin/env python3
"""
Repository layer - Database access
"""
from .base import BaseRepository
from .alert_repository import AlertRepository
from .notification_repository import NotificationRepository

__all__ = [
    "BaseRepository",
    "AlertRepository",
    "NotificationRepository",
]
