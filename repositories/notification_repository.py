#!/usr/bin/env python3
"""
Notification Repository - Database operations for user notifications
"""
import uuid
from typing import Optional, List, Dict, Any
from psycopg2.extras import Json

from exceptions import AlertNotFoundError
from .base import BaseRepository

NOTIFICATION_COLUMNS = "id, user_id, type, title, message, data, read, created_at"


class NotificationRepository(BaseRepository):
    """Repository for notification operations"""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS notifications (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(255) NOT NULL,
            type VARCHAR(20) NOT NULL,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            data JSONB,
            read BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """

    def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's notifications, newest first"""
        query = f"""
            SELECT {NOTIFICATION_COLUMNS} FROM notifications
            WHERE user_id = %s
            ORDER BY created_at DESC
        """
        return self.execute_query(query, (user_id,)) or []

    def create(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Insert an unread notification"""
        query = f"""
            INSERT INTO notifications (id, user_id, type, title, message, data)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING {NOTIFICATION_COLUMNS}
        """
        params = (
            str(uuid.uuid4()),
            user_id,
            notification_type,
            title,
            message,
            Json(data) if data is not None else None,
        )
        return self.execute_query(query, params, fetch_one=True)

    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        query = """
            UPDATE notifications SET read = TRUE
            WHERE id = %s AND user_id = %s
            RETURNING id
        """
        row = self.execute_query(query, (notification_id, user_id), fetch_one=True)
        if row is None:
            raise AlertNotFoundError("Notification not found or unauthorized")
        return True

    def mark_all_as_read(self, user_id: str) -> int:
        query = """
            UPDATE notifications SET read = TRUE
            WHERE user_id = %s AND read = FALSE
            RETURNING id
        """
        result = self.execute_query(query, (user_id,))
        return len(result) if result else 0

    def unread_count(self, user_id: str) -> int:
        query = "SELECT COUNT(*) AS count FROM notifications WHERE user_id = %s AND read = FALSE"
        row = self.execute_query(query, (user_id,), fetch_one=True)
        return int(row["count"]) if row else 0
