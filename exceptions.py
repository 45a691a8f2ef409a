#!/usr/bin/env python3
"""
Exceptions for reservoir telemetry operations.
"""
from typing import Optional


class ReservoirDataError(Exception):
    """Base exception for data acquisition errors."""

    status_code = 500


class ParseError(ReservoirDataError):
    """RCH content has no recognizable structure."""

    status_code = 422


class InvalidLocationError(ReservoirDataError):
    """Location identifier is not a safe file name."""

    status_code = 400


class LocationNotFoundError(ReservoirDataError):
    """No RCH or pre-converted JSON file exists for a location."""

    status_code = 404

    def __init__(self, location_id: str):
        self.location_id = location_id
        super().__init__(f"No time-series data for location {location_id}")


class UpstreamFetchError(ReservoirDataError):
    """Error contacting the station API (non-2xx, network, timeout)."""

    status_code = 502

    def __init__(self, station_id: Optional[str], status: Optional[int] = None, message: str = ""):
        self.station_id = station_id
        self.status = status
        detail = message or (f"status {status}" if status is not None else "request failed")
        target = f"station {station_id}" if station_id else "station list"
        super().__init__(f"Upstream fetch failed for {target}: {detail}")


class StationNotFoundError(ReservoirDataError):
    """Upstream answered but holds no data for the station."""

    status_code = 404

    def __init__(self, station_id: str):
        self.station_id = station_id
        super().__init__(f"No data found for station {station_id}")


class QueryError(ReservoirDataError):
    """Time-series database query failed or timed out."""

    status_code = 502


class AlertNotFoundError(ReservoirDataError):
    """Alert or notification missing, or owned by another user."""

    status_code = 404


class StoreUnavailableError(ReservoirDataError):
    """Alert/notification database cannot be reached."""

    status_code = 503

    def __init__(self, message: str = "Alert store unavailable"):
        super().__init__(message)
