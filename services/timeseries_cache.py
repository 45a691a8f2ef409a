#!/usr/bin/env python3
"""
Time-Series Cache - In-memory map of location id -> parsed RCH series

One instance is created at startup and handed to every request through
app.state. There is no TTL and no eviction: the location set is small and
fixed, entries live until invalidated or the process exits.
"""
import logging
from typing import Dict, List, Optional

from models import RchParsedData

logger = logging.getLogger(__name__)


class TimeSeriesCache:
    """Unbounded process-lifetime cache; last writer wins on set()"""

    def __init__(self):
        self._entries: Dict[str, RchParsedData] = {}

    def get(self, location_id: str) -> Optional[RchParsedData]:
        data = self._entries.get(location_id)
        if data is None:
            logger.debug(f"[RCH Cache] miss for location {location_id}")
        else:
            logger.debug(f"[RCH Cache] hit for location {location_id}")
        return data

    def set(self, location_id: str, data: RchParsedData) -> None:
        self._entries[location_id] = data

    def invalidate(self, location_id: Optional[str] = None) -> None:
        """Drop one location, or every location when no id is given"""
        if location_id is None:
            count = len(self._entries)
            self._entries.clear()
            logger.info(f"[RCH Cache] cleared {count} entries")
        else:
            self._entries.pop(location_id, None)

    def keys(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, location_id: str) -> bool:
        return location_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
