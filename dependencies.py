#!/usr/bin/env python3
"""
Request dependencies - resolve the per-process services built at startup
"""
from fastapi import Request

from repositories.alert_repository import AlertRepository
from repositories.notification_repository import NotificationRepository
from services.alert_service import AlertService
from services.rch_service import RchService
from services.station_service import StationService
from services.timeseries_store import TimeSeriesStore


def get_station_service(request: Request) -> StationService:
    return request.app.state.station_service


def get_rch_service(request: Request) -> RchService:
    return request.app.state.rch_service


def get_timeseries_store(request: Request) -> TimeSeriesStore:
    return request.app.state.timeseries_store


def get_alert_service(request: Request) -> AlertService:
    return request.app.state.alert_service


def get_alert_repository(request: Request) -> AlertRepository:
    return request.app.state.alert_service.alert_repo


def get_notification_repository(request: Request) -> NotificationRepository:
    return request.app.state.alert_service.notification_repo
