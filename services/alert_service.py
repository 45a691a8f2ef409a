#!/usr/bin/env python3
"""
Alert Service - Evaluates user temperature alerts against station readings

For each `avgTemp` alert the latest 10-minute reading is compared with the
threshold. A triggered alert records `last_triggered`, then creates a `tempAlert`
notification; an alert fires at most once per cooldown window. Alerts whose
station fetch or bookkeeping fails are logged and skipped.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from config import ALERT_COOLDOWN_HOURS
from exceptions import ReservoirDataError
from models import AlertCheckResult, AlertType, NotificationType, StationReading, UserAlert
from repositories.alert_repository import AlertRepository
from repositories.notification_repository import NotificationRepository
from services.station_service import StationService

logger = logging.getLogger(__name__)

TEMPERATURE_METRIC = "air_temp_avg"


def latest_metric(readings: List[StationReading], metric: str) -> Optional[float]:
    """Value of `metric` in the most recent reading that carries it"""
    for reading in sorted(readings, key=lambda r: r.timestamp, reverse=True):
        if metric in reading.metrics:
            return reading.metrics[metric]
    return None


class AlertService:
    """Service for user alert evaluation"""

    def __init__(
        self,
        station_service: StationService,
        alert_repo: Optional[AlertRepository] = None,
        notification_repo: Optional[NotificationRepository] = None,
        cooldown_hours: float = ALERT_COOLDOWN_HOURS,
    ):
        self.station_service = station_service
        self.alert_repo = alert_repo or AlertRepository()
        self.notification_repo = notification_repo or NotificationRepository()
        self.cooldown_hours = cooldown_hours

    def _cooled_down(self, alert: UserAlert, now: datetime) -> bool:
        if alert.last_triggered is None:
            return True
        last = alert.last_triggered
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        hours = (now - last).total_seconds() / 3600
        if hours < self.cooldown_hours:
            logger.info(f"[Alerts] {alert.id} on station {alert.station_id} in cooldown ({hours:.1f}h)")
            return False
        return True

    async def _station_name(self, station_id: str) -> str:
        try:
            stations = await self.station_service.get_stations()
        except ReservoirDataError:
            return station_id
        for station in stations:
            if station.id == station_id:
                return station.name
        return station_id

    async def _notify(self, alert: UserAlert, current_temp: float) -> None:
        # last_triggered first: a deleted alert must not leave a notification behind
        await self.alert_repo.run(self.alert_repo.update_last_triggered, alert.id, alert.user_id)

        station_name = await self._station_name(alert.station_id)
        await self.notification_repo.run(
            self.notification_repo.create,
            alert.user_id,
            NotificationType.TEMP_ALERT.value,
            "Temperature alert",
            f"{station_name}: average temperature {current_temp:.1f}°C "
            f"is above your threshold of {alert.threshold}°C",
            {
                "stationId": alert.station_id,
                "stationName": station_name,
                "threshold": alert.threshold,
                "currentValue": current_temp,
                "alertId": alert.id,
            },
        )

    async def check_temperature_alerts(self, station_id: Optional[str] = None) -> List[AlertCheckResult]:
        """
        Check every temperature alert, or those of one station.

        Returns:
            One result per evaluated alert
        """
        rows = await self.alert_repo.run(self.alert_repo.list_all, station_id)
        alerts = [UserAlert.model_validate(row) for row in rows]
        alerts = [a for a in alerts if a.type == AlertType.AVG_TEMP]

        if not alerts:
            logger.info(f"[Alerts] No alerts to check{f' for station {station_id}' if station_id else ''}")
            return []

        logger.info(f"[Alerts] Checking {len(alerts)} alert(s)")
        now = datetime.now(timezone.utc)
        results = []

        for alert in alerts:
            try:
                readings = await self.station_service.get_10min_data(alert.station_id)
            except ReservoirDataError as e:
                logger.warning(f"[Alerts] Skipping alert {alert.id}: {e}")
                continue

            current_temp = latest_metric(readings, TEMPERATURE_METRIC)
            if current_temp is None:
                continue

            triggered = current_temp > alert.threshold and self._cooled_down(alert, now)
            if triggered:
                logger.info(
                    f"[Alerts] Triggered {alert.id}: station {alert.station_id} "
                    f"{current_temp:.1f} > {alert.threshold}"
                )
                try:
                    await self._notify(alert, current_temp)
                except ReservoirDataError as e:
                    logger.warning(f"[Alerts] Could not record alert {alert.id}: {e}")
                    continue

            results.append(AlertCheckResult(
                alert_id=alert.id,
                station_id=alert.station_id,
                threshold=alert.threshold,
                current_value=current_temp,
                triggered=triggered,
            ))

        logger.info(f"[Alerts] Check complete: {sum(r.triggered for r in results)} triggered")
        return results
