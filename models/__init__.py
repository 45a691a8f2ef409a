#!/usr/bin/env python3
"""
Data models / Pydantic schemas
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from enum import Enum


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either form on input"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AlertType(str, Enum):
    AVG_TEMP = "avgTemp"


class NotificationType(str, Enum):
    TEMP_ALERT = "tempAlert"
    SYSTEM = "system"
    WARNING = "warning"


# =====================================================
# RCH time series
# =====================================================

class RchRecord(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    date: date
    timestamp: datetime
    # None marks a missing / non-numeric measurement
    value: Optional[float] = None
    values: Dict[str, Optional[float]] = Field(default_factory=dict)


class SkippedLine(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    line_number: int
    reason: str
    line: str


class RchMetadata(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    source_file_name: Optional[str] = None
    record_count: int
    skipped_count: int = 0
    column_headers: List[str] = Field(default_factory=list)
    attributes: Dict[str, str] = Field(default_factory=dict)


class RchParsedData(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timeseries: List[RchRecord]
    metadata: RchMetadata
    skipped: List[SkippedLine] = Field(default_factory=list)


# =====================================================
# Meteo stations
# =====================================================

class Station(CamelModel):
    id: str
    name: str
    location: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None


class StationReading(CamelModel):
    station_id: str
    timestamp: datetime
    metrics: Dict[str, float] = Field(default_factory=dict)
    invalid: Optional[bool] = None
    forecast: Optional[bool] = None


# =====================================================
# Time-series store
# =====================================================

class TimePoint(CamelModel):
    time: Optional[date] = None
    fields: Dict[str, Any] = Field(default_factory=dict)


# =====================================================
# Alerts / notifications
# =====================================================

class UserAlert(CamelModel):
    id: str
    user_id: str
    station_id: str
    type: AlertType = AlertType.AVG_TEMP
    threshold: float
    channels: List[str] = []
    last_triggered: Optional[datetime] = None
    created_at: datetime


class AlertRequest(CamelModel):
    station_id: str
    type: AlertType = AlertType.AVG_TEMP
    threshold: float
    channels: List[str] = []


class AlertCheckResult(CamelModel):
    alert_id: str
    station_id: str
    threshold: float
    current_value: float
    triggered: bool


class Notification(CamelModel):
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    read: bool = False
    created_at: datetime


class NotificationRequest(CamelModel):
    type: NotificationType
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None


class NotificationUpdate(CamelModel):
    notification_id: Optional[str] = None
    mark_all_read: bool = False
