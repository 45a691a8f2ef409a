#!/usr/bin/env python3
"""
Alert Repository - Database operations for user station alerts
"""
import uuid
from typing import Optional, List, Dict, Any

from exceptions import AlertNotFoundError
from .base import BaseRepository

ALERT_COLUMNS = "id, user_id, station_id, type, threshold, channels, last_triggered, created_at"


class AlertRepository(BaseRepository):
    """Repository for user alert operations"""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS user_alerts (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(255) NOT NULL,
            station_id VARCHAR(50) NOT NULL,
            type VARCHAR(20) NOT NULL,
            threshold DOUBLE PRECISION NOT NULL,
            channels TEXT[] NOT NULL DEFAULT '{}',
            last_triggered TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (user_id, station_id, type)
        )
    """

    def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's alerts"""
        query = f"SELECT {ALERT_COLUMNS} FROM user_alerts WHERE user_id = %s ORDER BY created_at"
        return self.execute_query(query, (user_id,)) or []

    def list_by_station(self, user_id: str, station_id: str) -> List[Dict[str, Any]]:
        """Get a user's alerts for one station"""
        query = f"""
            SELECT {ALERT_COLUMNS} FROM user_alerts
            WHERE user_id = %s AND station_id = %s
            ORDER BY created_at
        """
        return self.execute_query(query, (user_id, station_id)) or []

    def list_all(self, station_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get every alert (background checks), optionally for one station"""
        if station_id:
            query = f"SELECT {ALERT_COLUMNS} FROM user_alerts WHERE station_id = %s"
            return self.execute_query(query, (station_id,)) or []
        query = f"SELECT {ALERT_COLUMNS} FROM user_alerts"
        return self.execute_query(query) or []

    def create_or_update(
        self,
        user_id: str,
        station_id: str,
        alert_type: str,
        threshold: float,
        channels: List[str],
    ) -> Optional[Dict[str, Any]]:
        """Insert an alert, or update threshold/channels of the existing one"""
        query = f"""
            INSERT INTO user_alerts (id, user_id, station_id, type, threshold, channels)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id, station_id, type)
            DO UPDATE SET
                threshold = EXCLUDED.threshold,
                channels = EXCLUDED.channels
            RETURNING {ALERT_COLUMNS}
        """
        params = (str(uuid.uuid4()), user_id, station_id, alert_type, threshold, list(channels))
        return self.execute_query(query, params, fetch_one=True)

    def update_last_triggered(self, alert_id: str, user_id: str) -> bool:
        """Record that an alert fired now"""
        query = """
            UPDATE user_alerts SET last_triggered = CURRENT_TIMESTAMP
            WHERE id = %s AND user_id = %s
            RETURNING id
        """
        row = self.execute_query(query, (alert_id, user_id), fetch_one=True)
        if row is None:
            raise AlertNotFoundError("Alert not found or unauthorized")
        return True

    def delete(self, alert_id: str, user_id: str) -> bool:
        """Delete one of the user's alerts"""
        query = "DELETE FROM user_alerts WHERE id = %s AND user_id = %s RETURNING id"
        row = self.execute_query(query, (alert_id, user_id), fetch_one=True)
        if row is None:
            raise AlertNotFoundError("Alert not found or unauthorized")
        return True
