#!/usr/bin/env python3
"""
Station Controller - API routes for meteo station readings
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from dependencies import get_station_service
from services.station_service import StationService, cache_control_header

router = APIRouter(tags=["Stations"])


@router.get("/stations")
async def get_stations(
    response: Response,
    service: StationService = Depends(get_station_service),
):
    """List all meteo stations"""
    stations = await service.get_stations()
    response.headers["Cache-Control"] = cache_control_header("stations")
    return {"data": stations}


@router.get("/stations/{station_id}/daily")
async def get_station_daily(
    station_id: str,
    response: Response,
    from_date: Optional[date] = Query(None, alias="from", description="Start date (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, alias="to", description="End date (YYYY-MM-DD)"),
    service: StationService = Depends(get_station_service),
):
    """Daily readings for a station"""
    readings = await service.get_daily_data(station_id, from_date, to_date)
    response.headers["Cache-Control"] = cache_control_header("daily")
    return {"data": readings}


@router.get("/stations/{station_id}/hourly")
async def get_station_hourly(
    station_id: str,
    response: Response,
    service: StationService = Depends(get_station_service),
):
    """Hourly readings for a station (not cached)"""
    readings = await service.get_hourly_data(station_id)
    response.headers["Cache-Control"] = cache_control_header("hourly")
    return {"data": readings}


@router.get("/stations/{station_id}/min10")
async def get_station_10min(
    station_id: str,
    response: Response,
    service: StationService = Depends(get_station_service),
):
    """10-minute readings for a station"""
    readings = await service.get_10min_data(station_id)
    response.headers["Cache-Control"] = cache_control_header("min10")
    return {"data": readings}
