"""
HTTP surface tests: response envelopes, status mapping and cache headers.
"""

from datetime import date

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from conftest import UpstreamRecorder
from exceptions import QueryError
from models import TimePoint
from repositories.alert_repository import AlertRepository
from services.alert_service import AlertService
from services.rch_service import RchService
from services.station_service import StationService
from services.timeseries_cache import TimeSeriesCache
from test_alert_service import InMemoryAlertRepository, InMemoryNotificationRepository, alert_row


class StubStore:
    def __init__(self, points=None, exc=None):
        self.points = points or []
        self.exc = exc
        self.windows = []

    async def query_range(self, measurement, window_days):
        self.windows.append(window_days)
        if self.exc:
            raise self.exc
        return self.points

    async def close(self):
        pass


@pytest.fixture
def upstream():
    return UpstreamRecorder(body={"93": {
        "2024-01-01": {"date": "2024-01-01", "air_temp_avg": "12.0"},
        "2024-01-02": {"date": "2024-01-02", "air_temp_avg": "13.0"},
    }})


@pytest.fixture
def rch_dir(tmp_path, sample_rch):
    (tmp_path / "93.rch").write_text(sample_rch, encoding="utf-8")
    (tmp_path / "broken.rch").write_text("nothing useful\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def make_client(upstream, rch_dir):
    def _make(store=None, alert_rows=None, alert_repo=None):
        stations = StationService(
            client=httpx.AsyncClient(transport=httpx.MockTransport(upstream)),
            api_url="https://upstream.test/meteo.php",
            token="secret",
        )
        rch = RchService(TimeSeriesCache(), data_dir=str(rch_dir), json_dir=None)
        alerts = AlertService(
            stations,
            alert_repo=alert_repo or InMemoryAlertRepository(alert_rows or []),
            notification_repo=InMemoryNotificationRepository(),
        )
        app = create_app(
            station_service=stations,
            timeseries_store=store or StubStore(),
            rch_service=rch,
            alert_service=alerts,
            background_checks=False,
        )
        return TestClient(app)

    return _make


class TestStations:

    def test_daily_envelope_and_cache_header(self, make_client, upstream):
        with make_client() as client:
            response = client.get("/stations/93/daily", params={"from": "2024-01-01", "to": "2024-01-02"})

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, s-maxage=43200, stale-while-revalidate=21600"
        data = response.json()["data"]
        assert [r["metrics"]["air_temp_avg"] for r in data] == [12.0, 13.0]
        assert data[0]["stationId"] == "93"
        assert upstream.requests[0]["from_date"] == "2024-01-01"

    def test_hourly_no_store(self, make_client):
        with make_client() as client:
            response = client.get("/stations/93/hourly")
        assert response.headers["cache-control"] == "no-store"

    def test_min10_cache_header(self, make_client):
        with make_client() as client:
            response = client.get("/stations/93/min10")
        assert response.headers["cache-control"] == "public, s-maxage=6000, stale-while-revalidate=600"

    def test_upstream_failure_is_502(self, make_client, upstream):
        upstream.status_code = 500
        with make_client() as client:
            response = client.get("/stations/93/min10")

        assert response.status_code == 502
        assert "error" in response.json()
        assert "data" not in response.json()

    def test_unknown_station_is_404(self, make_client, upstream):
        upstream.body = {}
        with make_client() as client:
            response = client.get("/stations/999/daily")

        assert response.status_code == 404
        assert "999" in response.json()["error"]

    def test_bad_date_is_422(self, make_client):
        with make_client() as client:
            response = client.get("/stations/93/daily", params={"from": "not-a-date"})

        assert response.status_code == 422
        assert "error" in response.json()


class TestRch:

    def test_sample_location(self, make_client):
        with make_client() as client:
            response = client.get("/rch")

        assert response.status_code == 200
        assert response.json()["data"]["metadata"]["recordCount"] == 3

    def test_location(self, make_client):
        with make_client() as client:
            response = client.get("/rch/93")

        record = response.json()["data"]["timeseries"][0]
        assert record["date"] == "1999-10-01"
        assert record["value"] == 12.5

    def test_missing_location_is_404(self, make_client):
        with make_client() as client:
            response = client.get("/rch/404")
        assert response.status_code == 404

    def test_invalid_location_is_400(self, make_client):
        with make_client() as client:
            response = client.get("/rch/bad.id")
        assert response.status_code == 400

    def test_unparsable_file_is_422(self, make_client):
        with make_client() as client:
            response = client.get("/rch/broken")
        assert response.status_code == 422

    def test_upload(self, make_client, sample_rch):
        with make_client() as client:
            response = client.post(
                "/rch",
                files={"file": ("upload.rch", sample_rch.encode(), "text/plain")},
            )

        assert response.status_code == 200
        metadata = response.json()["data"]["metadata"]
        assert metadata["sourceFileName"] == "upload.rch"
        assert metadata["recordCount"] == 3

    def test_upload_without_file_is_400(self, make_client):
        with make_client() as client:
            response = client.post("/rch")

        assert response.status_code == 400
        assert response.json() == {"error": "No file provided"}

    def test_upload_empty_file_is_422(self, make_client):
        with make_client() as client:
            response = client.post("/rch", files={"file": ("empty.rch", b"", "text/plain")})
        assert response.status_code == 422

    def test_cache_invalidation(self, make_client):
        with make_client() as client:
            client.get("/rch/93")
            assert client.get("/health").json()["cached_locations"] == 1

            assert client.delete("/rch/cache/93").status_code == 200
            assert client.get("/health").json()["cached_locations"] == 0

            client.get("/rch/93")
            client.delete("/rch/cache")
            assert client.get("/health").json()["cached_locations"] == 0


class TestDamData:

    def test_points(self, make_client):
        store = StubStore(points=[TimePoint(time=date(2024, 1, 1), fields={"cota": 150.0})])
        with make_client(store=store) as client:
            response = client.get("/dam-data", params={"window_days": 7})

        assert response.status_code == 200
        assert response.json() == {"data": [{"time": "2024-01-01", "fields": {"cota": 150.0}}]}
        assert store.windows == [7]

    def test_query_error_is_502(self, make_client):
        with make_client(store=StubStore(exc=QueryError("unreachable"))) as client:
            response = client.get("/dam-data")

        assert response.status_code == 502
        assert response.json() == {"error": "unreachable"}

    def test_window_must_be_positive(self, make_client):
        with make_client() as client:
            response = client.get("/dam-data", params={"window_days": 0})
        assert response.status_code == 422


class TestAlerts:

    def test_check_endpoint(self, make_client, upstream):
        upstream.body = {"2024-07-01 12:00:00": {"air_temp_avg": "41.0"}}
        with make_client(alert_rows=[alert_row(threshold=30.0)]) as client:
            response = client.post("/alerts/check")

        body = response.json()
        assert response.status_code == 200
        assert body["triggered"] == 1
        assert body["data"][0]["currentValue"] == 41.0

    def test_store_down_is_503_not_404(self, make_client):
        class DownAlertRepository(AlertRepository):
            def get_connection(self):
                return None

        with make_client(alert_repo=DownAlertRepository(db_config={})) as client:
            patched = client.patch("/alerts/a1", params={"user_id": "u1"})
            deleted = client.delete("/alerts", params={"id": "a1", "user_id": "u1"})

        assert patched.status_code == 503
        assert deleted.status_code == 503
        assert patched.json() == {"error": "Alert store unavailable"}

    def test_missing_alert_is_404(self, make_client):
        class EmptyAlertRepository(AlertRepository):
            def execute_query(self, query, params=None, fetch_one=False):
                return None

        with make_client(alert_repo=EmptyAlertRepository(db_config={})) as client:
            response = client.patch("/alerts/a1", params={"user_id": "u1"})

        assert response.status_code == 404
