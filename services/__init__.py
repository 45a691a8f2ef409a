#!/usr/bin/env python3
"""
Service layer - Data acquisition and business logic
"""
from .timeseries_cache import TimeSeriesCache
from .rch_service import RchService
from .station_service import StationService
from .timeseries_store import TimeSeriesStore
from .alert_service import AlertService

__all__ = [
    "TimeSeriesCache",
    "RchService",
    "StationService",
    "TimeSeriesStore",
    "AlertService",
]
