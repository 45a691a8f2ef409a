#!/usr/bin/env python3
"""
RCH Service - Cache-aside access to parsed RCH series per location
"""
import json
import logging
import re
from typing import Optional

import anyio
from pydantic import ValidationError

import rch_parser
from config import RCH_DATA_DIR, RCH_JSON_DIR
from exceptions import InvalidLocationError, LocationNotFoundError, ParseError
from models import RchParsedData
from services.timeseries_cache import TimeSeriesCache

logger = logging.getLogger(__name__)

LOCATION_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class RchService:
    """Service for RCH time series"""

    def __init__(
        self,
        cache: TimeSeriesCache,
        data_dir: str = RCH_DATA_DIR,
        json_dir: Optional[str] = RCH_JSON_DIR,
    ):
        self.cache = cache
        self.data_dir = anyio.Path(data_dir)
        self.json_dir = anyio.Path(json_dir) if json_dir else None

    @staticmethod
    def validate_location_id(location_id: str) -> str:
        if not location_id or not LOCATION_ID_PATTERN.fullmatch(location_id):
            raise InvalidLocationError(f"Invalid location id: {location_id!r}")
        return location_id

    async def get_parsed(self, location_id: str) -> RchParsedData:
        """
        Get the parsed series for a location.

        Checks the cache first; on a miss loads the pre-converted JSON file if
        one exists, otherwise parses the .rch file, then caches the result.

        Raises:
            InvalidLocationError: if the id is not a safe file name
            LocationNotFoundError: if no file exists for the location
            ParseError: if the .rch file has no recognizable structure, or only
                an unreadable converted JSON file exists
        """
        self.validate_location_id(location_id)

        cached = self.cache.get(location_id)
        if cached is not None:
            return cached

        logger.info(f"[RCH] Cache miss for location {location_id}, loading...")
        data = await self._load(location_id)
        self.cache.set(location_id, data)
        return data

    async def _load(self, location_id: str) -> RchParsedData:
        converted_error = None
        if self.json_dir is not None:
            json_path = self.json_dir / f"{location_id}.json"
            if await json_path.is_file():
                raw = await json_path.read_text(encoding="utf-8")
                try:
                    return RchParsedData.model_validate(json.loads(raw))
                except (ValueError, ValidationError) as e:
                    # Truncated or foreign-shaped JSON; the .rch source is authoritative
                    logger.warning(f"[RCH] Ignoring unreadable {json_path.name}: {e}")
                    converted_error = e

        rch_path = self.data_dir / f"{location_id}.rch"
        if not await rch_path.is_file():
            if converted_error is not None:
                raise ParseError(
                    f"Converted series for location {location_id} is invalid and no .rch source exists"
                ) from converted_error
            raise LocationNotFoundError(location_id)

        content = await rch_path.read_text(encoding="utf-8", errors="replace")
        return rch_parser.parse(content, source_file_name=rch_path.name)

    def parse_upload(
        self,
        content: str,
        file_name: Optional[str] = None,
        location_id: Optional[str] = None,
    ) -> RchParsedData:
        """Parse uploaded content; cache it under location_id when given"""
        if location_id is not None:
            self.validate_location_id(location_id)

        data = rch_parser.parse(content, source_file_name=file_name)

        if location_id is not None:
            self.cache.set(location_id, data)
            logger.info(f"[RCH] Cached upload {file_name} as location {location_id}")
        return data

    def invalidate(self, location_id: Optional[str] = None) -> None:
        if location_id is not None:
            self.validate_location_id(location_id)
        self.cache.invalidate(location_id)
