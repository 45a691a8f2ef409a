#!/usr/bin/env python3
"""
Time-Series Store - Windowed range queries against InfluxDB

Rows arrive push-style (next / error / complete). RowCollector buffers them
and resolves one future when the stream completes, so callers simply await
the full result. Rows collected before an error are discarded.
"""
import asyncio
import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from influxdb_client.client.influxdb_client_async import InfluxDBClientAsync

from config import (
    INFLUX_BUCKET,
    INFLUX_MEASUREMENT,
    INFLUX_ORG,
    INFLUX_TOKEN,
    INFLUX_URL,
    INFLUX_WINDOW_DAYS,
    QUERY_TIMEOUT_SECONDS,
)
from exceptions import QueryError
from models import TimePoint

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

# Flux bookkeeping columns, not measurement fields
FLUX_META_COLUMNS = {"result", "table", "_start", "_stop", "_measurement", "_time"}


class RowCollector:
    """Bridges row callbacks to a single awaitable result"""

    def __init__(self):
        self._rows: List[Dict[str, Any]] = []
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    def next(self, row: Dict[str, Any]) -> None:
        if not self._future.done():
            self._rows.append(row)

    def error(self, exc: BaseException) -> None:
        if self._future.done():
            return
        self._rows.clear()
        if not isinstance(exc, QueryError):
            wrapped = QueryError(f"Time-series query failed: {exc}")
            wrapped.__cause__ = exc
            exc = wrapped
        self._future.set_exception(exc)

    def complete(self) -> None:
        if not self._future.done():
            self._future.set_result(list(self._rows))

    async def wait(self) -> List[Dict[str, Any]]:
        return await self._future


def _to_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def to_time_point(row: Dict[str, Any]) -> TimePoint:
    """Reshape a Flux row; _time becomes a date-only value"""
    fields = {k: v for k, v in row.items() if k not in FLUX_META_COLUMNS}
    return TimePoint(time=_to_date(row.get("_time")), fields=fields)


def build_range_query(bucket: str, measurement: str, window_days: int) -> str:
    if not NAME_PATTERN.match(bucket) or not NAME_PATTERN.match(measurement):
        raise ValueError("bucket and measurement must be plain identifiers")
    if window_days <= 0:
        raise ValueError("window_days must be positive")

    return f"""
        from(bucket: "{bucket}")
            |> range(start: -{int(window_days)}d)
            |> filter(fn: (r) => r["_measurement"] == "{measurement}")
            |> aggregateWindow(every: 1d, fn: mean, createEmpty: false)
            |> pivot(rowKey: ["_time", "barragem"], columnKey: ["_field"], valueColumn: "_value")
            |> group(columns: ["barragem", "_time"])
            |> drop(columns: ["_start", "_stop"])
            |> yield(name: "mean_joined")
    """


class TimeSeriesStore:
    """InfluxDB range-query client"""

    def __init__(
        self,
        client: Optional[InfluxDBClientAsync] = None,
        url: str = INFLUX_URL,
        token: str = INFLUX_TOKEN,
        org: str = INFLUX_ORG,
        bucket: str = INFLUX_BUCKET,
        timeout: float = QUERY_TIMEOUT_SECONDS,
    ):
        self.org = org
        self.bucket = bucket
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or InfluxDBClientAsync(
            url=url, token=token, org=org, timeout=int(timeout * 1000)
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def query_rows(self, query: str, collector: RowCollector) -> None:
        """Stream query rows into the collector's callbacks"""
        try:
            records = await self._client.query_api().query_stream(query, org=self.org)
            async for record in records:
                collector.next(dict(record.values))
        except Exception as e:
            logger.error(f"[Influx] Query error: {e}")
            collector.error(e)
            return
        collector.complete()

    async def query_range(
        self,
        measurement: str = INFLUX_MEASUREMENT,
        window_days: int = INFLUX_WINDOW_DAYS,
    ) -> List[TimePoint]:
        """
        Daily means of a measurement over the trailing window.

        Raises:
            QueryError: on query failure or timeout
        """
        query = build_range_query(self.bucket, measurement, window_days)

        collector = RowCollector()
        task = asyncio.create_task(self.query_rows(query, collector))
        try:
            rows = await asyncio.wait_for(collector.wait(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise QueryError(f"Time-series query timed out after {self.timeout}s") from e
        finally:
            # Also reached when the caller itself is cancelled
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info(f"[Influx] {measurement}: {len(rows)} rows over {window_days} days")
        return [to_time_point(row) for row in rows]
