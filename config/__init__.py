#!/usr/bin/env python3
"""
Configuration module
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Database config (alerts / notifications store)
DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "5432")),
    "database": os.getenv("DB_NAME", "water_wise"),
    "user": os.getenv("DB_USER", "waterwise"),
    "password": os.getenv("DB_PASSWORD", ""),
}

# IrriStrat meteo station API
IRRISTRAT_API_URL = os.getenv(
    "IRRISTRAT_API_URL", "https://irristrat.com/ws/clients/meteoStations.php"
)
IRRISTRAT_TOKEN = os.getenv("IRRISTRAT_TOKEN", "")
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

# InfluxDB time-series store
INFLUX_URL = os.getenv("INFLUX_URL", "http://localhost:8086")
INFLUX_TOKEN = os.getenv("INFLUX_TOKEN", "")
INFLUX_ORG = os.getenv("INFLUX_ORG", "water-wise")
INFLUX_BUCKET = os.getenv("INFLUX_BUCKET", "dados-barragens")
INFLUX_MEASUREMENT = os.getenv("INFLUX_MEASUREMENT", "barragem_data")
INFLUX_WINDOW_DAYS = int(os.getenv("INFLUX_WINDOW_DAYS", "30"))
QUERY_TIMEOUT_SECONDS = float(os.getenv("QUERY_TIMEOUT_SECONDS", "30"))

# RCH time-series files
RCH_DATA_DIR = os.getenv("RCH_DATA_DIR", "public/SeriesTemporaisCaudais")
RCH_JSON_DIR = os.getenv("RCH_JSON_DIR", "public/data")
RCH_SAMPLE_LOCATION = os.getenv("RCH_SAMPLE_LOCATION", "93")

# Station data cache policy: (max_age, stale_while_revalidate) in seconds.
# None disables caching for that granularity.
STATION_CACHE_POLICY = {
    "stations": (86400, 43200),
    "min10": (6000, 600),
    "hourly": None,
    "daily": (43200, 21600),
}
# Upper bound on cached station results (daily keys include caller date ranges)
STATION_CACHE_MAX_ENTRIES = int(os.getenv("STATION_CACHE_MAX_ENTRIES", "1000"))

# Alerts
ALERT_CHECK_INTERVAL_SECONDS = int(os.getenv("ALERT_CHECK_INTERVAL_SECONDS", "600"))
ALERT_COOLDOWN_HOURS = 24

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# API settings
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
]
