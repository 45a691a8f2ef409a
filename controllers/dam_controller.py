#!/usr/bin/env python3
"""
Dam Controller - API routes for reservoir readings from the time-series store
"""
from fastapi import APIRouter, Depends, Query

from config import INFLUX_MEASUREMENT, INFLUX_WINDOW_DAYS
from dependencies import get_timeseries_store
from services.timeseries_store import TimeSeriesStore

router = APIRouter(tags=["Dams"])


@router.get("/dam-data")
async def get_dam_data(
    window_days: int = Query(INFLUX_WINDOW_DAYS, ge=1, le=3650, description="Trailing window in days"),
    store: TimeSeriesStore = Depends(get_timeseries_store),
):
    """
    Daily mean readings (level, volume, ...) for every dam over the window

    Returns:
        {"data": [{"time": "YYYY-MM-DD", "fields": {...}}, ...]}
    """
    points = await store.query_range(INFLUX_MEASUREMENT, window_days)
    return {"data": points}
