#!/usr/bin/env python3
"""
Alert Controller - API routes for user station alerts

Repository calls are blocking (psycopg2) and run in the default executor
so they never block the event loop.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_alert_repository, get_alert_service
from models import AlertRequest, UserAlert
from repositories.alert_repository import AlertRepository
from services.alert_service import AlertService

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get("")
async def list_alerts(
    user_id: str = Query(..., description="Owner of the alerts"),
    station_id: Optional[str] = Query(None, description="Only alerts for this station"),
    repo: AlertRepository = Depends(get_alert_repository),
):
    """List a user's alerts"""
    if station_id:
        rows = await repo.run(repo.list_by_station, user_id, station_id)
    else:
        rows = await repo.run(repo.list_by_user, user_id)
    return {"data": [UserAlert.model_validate(row) for row in rows]}


@router.post("")
async def create_or_update_alert(
    body: AlertRequest,
    user_id: str = Query(...),
    repo: AlertRepository = Depends(get_alert_repository),
):
    """Create an alert, or update threshold/channels of an existing one"""
    row = await repo.run(
        repo.create_or_update,
        user_id,
        body.station_id,
        body.type.value,
        body.threshold,
        body.channels,
    )
    return {"data": UserAlert.model_validate(row)}


@router.delete("")
async def delete_alert(
    id: str = Query(..., description="Alert id"),
    user_id: str = Query(...),
    repo: AlertRepository = Depends(get_alert_repository),
):
    """Delete one of the user's alerts"""
    await repo.run(repo.delete, id, user_id)
    return {"data": {"success": True}}


@router.patch("/{alert_id}")
async def mark_alert_triggered(
    alert_id: str,
    user_id: str = Query(...),
    repo: AlertRepository = Depends(get_alert_repository),
):
    """Record that an alert fired now"""
    await repo.run(repo.update_last_triggered, alert_id, user_id)
    return {"data": {"success": True}}


@router.post("/check")
async def check_alerts(
    station_id: Optional[str] = Query(None, description="Only check alerts for this station"),
    service: AlertService = Depends(get_alert_service),
):
    """Evaluate temperature alerts now"""
    results = await service.check_temperature_alerts(station_id)
    return {
        "data": results,
        "triggered": sum(1 for r in results if r.triggered),
    }
