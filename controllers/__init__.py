#!/usr/bin/env python3
"""
Controller layer - API route handlers
"""
from .station_controller import router as station_router
from .rch_controller import router as rch_router
from .dam_controller import router as dam_router
from .alert_controller import router as alert_router
from .notification_controller import router as notification_router

__all__ = [
    "station_router",
    "rch_router",
    "dam_router",
    "alert_router",
    "notification_router",
]
