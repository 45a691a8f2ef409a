#!/usr/bin/env python3
"""
RCH Controller - API routes for RCH time series (sample, upload, cache)
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from config import RCH_SAMPLE_LOCATION
from dependencies import get_rch_service
from services.rch_service import RchService

router = APIRouter(prefix="/rch", tags=["RCH"])


@router.get("")
async def get_sample_rch(service: RchService = Depends(get_rch_service)):
    """Parsed series of the sample location"""
    data = await service.get_parsed(RCH_SAMPLE_LOCATION)
    return {"data": data}


@router.post("")
async def upload_rch(
    file: Optional[UploadFile] = File(None),
    location_id: Optional[str] = Query(None, description="Cache the parsed upload under this location"),
    service: RchService = Depends(get_rch_service),
):
    """Parse an uploaded .rch file (multipart field `file`)"""
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")

    raw = await file.read()
    content = raw.decode("utf-8", errors="replace")
    data = service.parse_upload(content, file_name=file.filename, location_id=location_id)
    return {"data": data}


@router.get("/{location_id}")
async def get_location_rch(location_id: str, service: RchService = Depends(get_rch_service)):
    """Parsed series for a location"""
    data = await service.get_parsed(location_id)
    return {"data": data}


@router.delete("/cache")
async def clear_rch_cache(service: RchService = Depends(get_rch_service)):
    """Drop every cached series"""
    service.invalidate()
    return {"data": {"success": True}}


@router.delete("/cache/{location_id}")
async def invalidate_rch_location(location_id: str, service: RchService = Depends(get_rch_service)):
    """Drop the cached series of one location"""
    service.invalidate(location_id)
    return {"data": {"success": True, "location_id": location_id}}
