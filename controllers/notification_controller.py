#!/usr/bin/env python3
"""
Notification Controller - API routes for user notifications
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from dependencies import get_notification_repository
from models import Notification, NotificationRequest, NotificationUpdate
from repositories.notification_repository import NotificationRepository

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(
    user_id: str = Query(...),
    repo: NotificationRepository = Depends(get_notification_repository),
):
    """A user's notifications, newest first"""
    rows = await repo.run(repo.list_by_user, user_id)
    return {"data": [Notification.model_validate(row) for row in rows]}


@router.get("/unread-count")
async def unread_count(
    user_id: str = Query(...),
    repo: NotificationRepository = Depends(get_notification_repository),
):
    count = await repo.run(repo.unread_count, user_id)
    return {"data": {"count": count}}


@router.post("")
async def create_notification(
    body: NotificationRequest,
    user_id: str = Query(...),
    repo: NotificationRepository = Depends(get_notification_repository),
):
    row = await repo.run(
        repo.create, user_id, body.type.value, body.title, body.message, body.data
    )
    return {"data": Notification.model_validate(row)}


@router.patch("")
async def update_notifications(
    body: NotificationUpdate,
    user_id: str = Query(...),
    repo: NotificationRepository = Depends(get_notification_repository),
):
    """Mark one notification, or all of them, as read"""
    if body.mark_all_read:
        count = await repo.run(repo.mark_all_as_read, user_id)
        return {"data": {"success": True, "count": count}}

    if not body.notification_id:
        raise HTTPException(status_code=400, detail="notificationId or markAllRead required")

    await repo.run(repo.mark_as_read, body.notification_id, user_id)
    return {"data": {"success": True}}
