#!/usr/bin/env python3
"""
Station Service - Meteo station readings from the IrriStrat API

Every call is a form-encoded POST carrying the token, an `option` selecting
the data set and the station id:

    option 1  station list
    option 2  daily data (optional from_date / to_date, yyyy-MM-dd)
    option 3  hourly data
    option 4  10-minute data

Responses are keyed inconsistently: some stations answer
`{"<id>": {...rows...}}`, others return the rows at the top level. Both are
unwrapped and every row is normalized into a StationReading.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from config import (
    IRRISTRAT_API_URL,
    IRRISTRAT_TOKEN,
    STATION_CACHE_MAX_ENTRIES,
    STATION_CACHE_POLICY,
    UPSTREAM_TIMEOUT_SECONDS,
)
from exceptions import StationNotFoundError, UpstreamFetchError
from models import Station, StationReading

logger = logging.getLogger(__name__)

OPTION_STATIONS = "1"
OPTION_DAILY = "2"
OPTION_HOURLY = "3"
OPTION_10MIN = "4"

# Row fields that are not measurements
NON_METRIC_FIELDS = {"date", "hour", "invalid", "forecast"}

TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
)

DateArg = Union[date, str, None]


def unwrap_station_payload(response: Any, station_id: str) -> Any:
    """
    Return the payload for a station.

    If the top-level mapping has a key equal to the station id whose value is
    a mapping, that nested mapping is the payload; otherwise the top level is.
    """
    if isinstance(response, dict):
        nested = response.get(str(station_id))
        if isinstance(nested, dict):
            return nested
    return response


def cache_control_header(granularity: str) -> str:
    """Cache-Control value for a granularity's cache policy"""
    policy = STATION_CACHE_POLICY.get(granularity)
    if policy is None:
        return "no-store"
    max_age, stale = policy
    return f"public, s-maxage={max_age}, stale-while-revalidate={stale}"


def _to_metric(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def _to_flag(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    try:
        return bool(int(value))
    except (TypeError, ValueError):
        return None


def _parse_timestamp(text: str) -> Optional[datetime]:
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _row_timestamp(key: str, row: Dict[str, Any]) -> Optional[datetime]:
    """Timestamp from the row's date + hour fields, else from its key"""
    row_date = row.get("date")
    if row_date:
        hour = str(row.get("hour") or "").strip()
        if hour.isdigit():
            hour = f"{int(hour):02d}:00"
        text = f"{str(row_date).strip()} {hour}".strip()
        parsed = _parse_timestamp(text)
        if parsed is not None:
            return parsed
    return _parse_timestamp(str(key).strip())


def normalize_readings(station_id: str, payload: Dict[str, Any]) -> List[StationReading]:
    """Map upstream rows onto StationReading, ordered by timestamp"""
    readings = []
    for key, row in payload.items():
        if not isinstance(row, dict):
            logger.debug(f"[Station {station_id}] Ignoring non-record entry {key!r}")
            continue

        timestamp = _row_timestamp(key, row)
        if timestamp is None:
            logger.warning(f"[Station {station_id}] Dropping row with unreadable timestamp {key!r}")
            continue

        metrics = {}
        for name, raw in row.items():
            if name in NON_METRIC_FIELDS:
                continue
            number = _to_metric(raw)
            if number is not None:
                metrics[name] = number

        readings.append(StationReading(
            station_id=str(station_id),
            timestamp=timestamp,
            metrics=metrics,
            invalid=_to_flag(row.get("invalid")),
            forecast=_to_flag(row.get("forecast")),
        ))

    readings.sort(key=lambda r: r.timestamp)
    return readings


def _format_date(value: DateArg) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return datetime.strptime(value, "%Y-%m-%d").strftime("%Y-%m-%d")


class StationService:
    """Client for IrriStrat meteo station data"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_url: str = IRRISTRAT_API_URL,
        token: str = IRRISTRAT_TOKEN,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
        cache_policy: Optional[Dict[str, Optional[Tuple[int, int]]]] = None,
        max_cache_entries: int = STATION_CACHE_MAX_ENTRIES,
    ):
        self.api_url = api_url
        self.token = token
        self.timeout = timeout
        self.cache_policy = STATION_CACHE_POLICY if cache_policy is None else cache_policy
        self.max_cache_entries = max_cache_entries
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )
        self._cache: Dict[str, Any] = {}
        self._cache_time: Dict[str, datetime] = {}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---------------------------------------------------------------
    # Result cache
    # ---------------------------------------------------------------

    def _is_cache_valid(self, key: str, granularity: str) -> bool:
        policy = self.cache_policy.get(granularity)
        if policy is None or key not in self._cache or key not in self._cache_time:
            return False
        elapsed = (datetime.now() - self._cache_time[key]).total_seconds()
        return elapsed < policy[0]

    def _store(self, key: str, granularity: str, value: Any) -> None:
        if self.cache_policy.get(granularity) is None:
            return
        self._purge_expired()
        while self._cache and len(self._cache) >= self.max_cache_entries:
            oldest = min(self._cache_time, key=self._cache_time.get)
            self._cache.pop(oldest, None)
            self._cache_time.pop(oldest, None)
        self._cache[key] = value
        self._cache_time[key] = datetime.now()

    def _purge_expired(self) -> None:
        """Drop entries older than their granularity's max age"""
        now = datetime.now()
        expired = []
        for key, stored_at in self._cache_time.items():
            # Keys start with their granularity: "daily:93:...", "stations"
            policy = self.cache_policy.get(key.split(":", 1)[0])
            if policy is None or (now - stored_at).total_seconds() >= policy[0]:
                expired.append(key)
        for key in expired:
            self._cache.pop(key, None)
            self._cache_time.pop(key, None)

    def clear_cache(self) -> None:
        self._cache.clear()
        self._cache_time.clear()

    # ---------------------------------------------------------------
    # Upstream
    # ---------------------------------------------------------------

    async def _post(self, params: Dict[str, str], station_id: Optional[str] = None) -> Any:
        """POST form params upstream and decode the JSON body"""
        body = {"token": self.token, **params}
        try:
            response = await self._client.post(self.api_url, data=body, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise UpstreamFetchError(station_id, message=f"timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"[Station API] option={params.get('option')} id={station_id} -> HTTP {status}")
            raise UpstreamFetchError(station_id, status=status) from e
        except httpx.RequestError as e:
            raise UpstreamFetchError(station_id, message=f"network error: {e}") from e
        except ValueError as e:
            raise UpstreamFetchError(station_id, message=f"invalid JSON response: {e}") from e

    async def get_stations(self) -> List[Station]:
        """List all stations (option 1)"""
        cache_key = "stations"
        if self._is_cache_valid(cache_key, "stations"):
            return self._cache[cache_key]

        data = await self._post({"option": OPTION_STATIONS})
        entries = data.items() if isinstance(data, dict) else enumerate(data or [])

        stations = []
        for key, raw in entries:
            if not isinstance(raw, dict):
                continue
            try:
                stations.append(Station(
                    id=str(raw.get("id", key)),
                    name=str(raw.get("estacao") or raw.get("name") or key),
                    location=raw.get("loc"),
                    lat=_to_metric(raw.get("lat")),
                    lon=_to_metric(raw.get("lon")),
                ))
            except (ValueError, TypeError):
                # Skip invalid station data but don't fail completely
                continue

        self._store(cache_key, "stations", stations)
        return stations

    async def _get_readings(
        self,
        granularity: str,
        option: str,
        station_id: str,
        extra: Optional[Dict[str, str]] = None,
    ) -> List[StationReading]:
        extra = extra or {}
        cache_key = ":".join([granularity, str(station_id)] + [f"{k}={v}" for k, v in sorted(extra.items())])
        if self._is_cache_valid(cache_key, granularity):
            return self._cache[cache_key]

        response = await self._post({"option": option, "id": str(station_id), **extra}, station_id)
        payload = unwrap_station_payload(response, station_id)
        if not isinstance(payload, dict) or not payload:
            raise StationNotFoundError(station_id)

        readings = normalize_readings(station_id, payload)
        logger.info(f"[Station {station_id}] {granularity}: {len(readings)} readings")

        self._store(cache_key, granularity, readings)
        return readings

    async def get_daily_data(
        self,
        station_id: str,
        from_date: DateArg = None,
        to_date: DateArg = None,
    ) -> List[StationReading]:
        """Daily readings (option 2), optionally bounded by from/to dates"""
        extra = {}
        if _format_date(from_date):
            extra["from_date"] = _format_date(from_date)
        if _format_date(to_date):
            extra["to_date"] = _format_date(to_date)
        return await self._get_readings("daily", OPTION_DAILY, station_id, extra)

    async def get_hourly_data(self, station_id: str) -> List[StationReading]:
        """Hourly readings (option 3); never cached"""
        return await self._get_readings("hourly", OPTION_HOURLY, station_id)

    async def get_10min_data(self, station_id: str) -> List[StationReading]:
        """10-minute readings (option 4)"""
        return await self._get_readings("min10", OPTION_10MIN, station_id)
