"""
Tests for StationService against a mocked IrriStrat upstream.
"""

from datetime import date, datetime

import httpx
import pytest

from conftest import UpstreamRecorder
from exceptions import StationNotFoundError, UpstreamFetchError
from services.station_service import (
    cache_control_header,
    normalize_readings,
    unwrap_station_payload,
)


def daily_rows(days=31, year=2024, month=1):
    return {
        f"{year}-{month:02d}-{d:02d}": {
            "date": f"{year}-{month:02d}-{d:02d}",
            "air_temp_avg": str(10 + d / 10),
            "precip": "0.0",
            "invalid": "0",
            "forecast": "0",
        }
        for d in range(days, 0, -1)
    }


class TestUnwrap:

    def test_nested_mapping_is_payload(self):
        inner = {"2024-01-01": {"air_temp_avg": 1}}
        assert unwrap_station_payload({"93": inner}, "93") == inner

    def test_top_level_payload(self):
        response = {"2024-01-01": {"air_temp_avg": 1}}
        assert unwrap_station_payload(response, "93") == response

    def test_non_mapping_value_keeps_top_level(self):
        response = {"93": "station name", "2024-01-01": {"air_temp_avg": 1}}
        assert unwrap_station_payload(response, "93") is response

    def test_integer_id(self):
        inner = {"x": {}}
        assert unwrap_station_payload({"7": inner}, 7) == inner


class TestCacheControl:

    def test_policies(self):
        assert cache_control_header("min10") == "public, s-maxage=6000, stale-while-revalidate=600"
        assert cache_control_header("daily") == "public, s-maxage=43200, stale-while-revalidate=21600"
        assert cache_control_header("stations") == "public, s-maxage=86400, stale-while-revalidate=43200"
        assert cache_control_header("hourly") == "no-store"


class TestNormalizeReadings:

    def test_hourly_row_uses_date_and_hour(self):
        payload = {
            "2024-05-01 10": {
                "date": "2024-05-01",
                "hour": "10",
                "invalid": "1",
                "forecast": "0",
                "air_temp_avg": "20.5",
                "wind_dir_avg": None,
                "station": "Évora",
            }
        }
        [reading] = normalize_readings("93", payload)

        assert reading.timestamp == datetime(2024, 5, 1, 10, 0)
        assert reading.metrics == {"air_temp_avg": 20.5}
        assert reading.invalid is True
        assert reading.forecast is False

    def test_ignores_non_record_entries_and_sorts(self):
        payload = {
            "2024-01-02 00:10:00": {"air_temp_avg": 2},
            "name": "Station",
            "2024-01-01 23:50:00": {"air_temp_avg": 1},
        }
        readings = normalize_readings("93", payload)

        assert [r.metrics["air_temp_avg"] for r in readings] == [1.0, 2.0]


class TestDailyData:

    @pytest.mark.asyncio
    async def test_thirty_one_days_in_order(self, make_station_service):
        upstream = UpstreamRecorder(body={"93": daily_rows()})
        service = make_station_service(upstream)

        readings = await service.get_daily_data("93", date(2024, 1, 1), date(2024, 1, 31))

        assert len(readings) == 31
        timestamps = [r.timestamp for r in readings]
        assert all(a < b for a, b in zip(timestamps, timestamps[1:]))
        assert readings[0].metrics["air_temp_avg"] == pytest.approx(10.1)

    @pytest.mark.asyncio
    async def test_form_body(self, make_station_service):
        upstream = UpstreamRecorder(body=daily_rows())
        service = make_station_service(upstream)

        await service.get_daily_data("93", "2024-01-01", date(2024, 1, 31))

        assert upstream.requests == [{
            "token": "secret",
            "option": "2",
            "id": "93",
            "from_date": "2024-01-01",
            "to_date": "2024-01-31",
        }]

    @pytest.mark.asyncio
    async def test_without_range_omits_dates(self, make_station_service):
        upstream = UpstreamRecorder(body=daily_rows(days=2))
        service = make_station_service(upstream)

        await service.get_daily_data("93")

        assert "from_date" not in upstream.requests[0]
        assert "to_date" not in upstream.requests[0]

    @pytest.mark.asyncio
    async def test_cached_per_range(self, make_station_service):
        upstream = UpstreamRecorder(body=daily_rows(days=3))
        service = make_station_service(upstream)

        await service.get_daily_data("93", "2024-01-01", "2024-01-03")
        await service.get_daily_data("93", "2024-01-01", "2024-01-03")
        await service.get_daily_data("93", "2024-01-02", "2024-01-03")

        assert len(upstream.requests) == 2


class TestUpstreamFailures:

    @pytest.mark.asyncio
    async def test_http_500_raises_and_caches_nothing(self, make_station_service):
        upstream = UpstreamRecorder(body={"error": "boom"}, status_code=500)
        service = make_station_service(upstream)

        with pytest.raises(UpstreamFetchError) as exc_info:
            await service.get_10min_data("93")

        assert exc_info.value.status == 500
        assert exc_info.value.station_id == "93"
        assert service._cache == {}

    @pytest.mark.asyncio
    async def test_timeout(self, make_station_service):
        upstream = UpstreamRecorder(exc=httpx.ReadTimeout("slow"))
        service = make_station_service(upstream)

        with pytest.raises(UpstreamFetchError, match="timeout"):
            await service.get_daily_data("93")

    @pytest.mark.asyncio
    async def test_network_error(self, make_station_service):
        upstream = UpstreamRecorder(exc=httpx.ConnectError("refused"))
        service = make_station_service(upstream)

        with pytest.raises(UpstreamFetchError, match="network error"):
            await service.get_hourly_data("93")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, [], {"93": {}}])
    async def test_empty_payload_is_station_not_found(self, make_station_service, body):
        upstream = UpstreamRecorder(body=body)
        service = make_station_service(upstream)

        with pytest.raises(StationNotFoundError):
            await service.get_10min_data("93")
        assert service._cache == {}


class TestCaching:

    @pytest.mark.asyncio
    async def test_hourly_never_cached(self, make_station_service):
        upstream = UpstreamRecorder(body={"2024-05-01 10:00": {"air_temp_avg": 1}})
        service = make_station_service(upstream)

        await service.get_hourly_data("93")
        await service.get_hourly_data("93")

        assert len(upstream.requests) == 2
        assert service._cache == {}

    @pytest.mark.asyncio
    async def test_min10_cached(self, make_station_service):
        upstream = UpstreamRecorder(body={"2024-05-01 10:10:00": {"air_temp_avg": 1}})
        service = make_station_service(upstream)

        first = await service.get_10min_data("93")
        second = await service.get_10min_data("93")

        assert len(upstream.requests) == 1
        assert second is first

    @pytest.mark.asyncio
    async def test_clear_cache(self, make_station_service):
        upstream = UpstreamRecorder(body={"2024-05-01 10:10:00": {"air_temp_avg": 1}})
        service = make_station_service(upstream)

        await service.get_10min_data("93")
        service.clear_cache()
        await service.get_10min_data("93")

        assert len(upstream.requests) == 2


    @pytest.mark.asyncio
    async def test_expired_entries_are_purged(self, make_station_service):
        upstream = UpstreamRecorder(body=daily_rows(days=2))
        service = make_station_service(upstream, cache_policy={"daily": (0, 0)})

        for day in range(1, 29):
            await service.get_daily_data("93", f"2024-02-{day:02d}", "2024-02-28")

        assert len(service._cache) <= 1
        assert len(service._cache_time) == len(service._cache)

    @pytest.mark.asyncio
    async def test_cache_is_bounded(self, make_station_service):
        upstream = UpstreamRecorder(body=daily_rows(days=2))
        service = make_station_service(upstream, max_cache_entries=5)

        for day in range(1, 11):
            await service.get_daily_data("93", f"2024-03-{day:02d}", "2024-03-31")
        assert len(service._cache) == 5

        await service.get_daily_data("93", "2024-03-10", "2024-03-31")
        assert len(upstream.requests) == 10


class TestStations:

    @pytest.mark.asyncio
    async def test_station_list(self, make_station_service):
        upstream = UpstreamRecorder(body={
            "93": {"id": "93", "estacao": "Évora", "loc": "Alentejo", "lat": "38.5", "lon": "-7.9"},
            "12": {"name": "Beja"},
            "meta": "ignored",
        })
        service = make_station_service(upstream)

        stations = await service.get_stations()

        assert [s.id for s in stations] == ["93", "12"]
        assert stations[0].name == "Évora"
        assert stations[0].lat == 38.5
        assert stations[1].name == "Beja"
        assert upstream.requests[0]["option"] == "1"
