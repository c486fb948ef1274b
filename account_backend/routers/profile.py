from __future__ import annotations

from typing import Optional

import anyio
from fastapi import APIRouter, Depends, File, Request, UploadFile

from account_backend.auth.deps import get_authenticated_user_id
from account_backend.core.errors import ValidationError
from account_backend.models import ProfileUpdateReq
from account_backend.services.audit import audit_event
from account_backend.services.account import get_profile, update_profile
from account_backend.services.profile_image import ProfileImageCoordinator, get_coordinator

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
async def get_user_profile(user_id: str = Depends(get_authenticated_user_id)):
    user = await anyio.to_thread.run_sync(get_profile, user_id)
    return {"success": True, "user": user}


@router.put("")
async def update_user_profile(req: Request, body: ProfileUpdateReq, user_id: str = Depends(get_authenticated_user_id)):
    user = await anyio.to_thread.run_sync(update_profile, user_id, body.name)
    audit_event("profile_updated", user_id, req, outcome="success")
    return {"success": True, "message": "Profile updated.", "user": user}


@router.post("/image")
async def upload_profile_image(
    req: Request,
    file: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_authenticated_user_id),
    coordinator: ProfileImageCoordinator = Depends(get_coordinator),
):
    if file is None:
        raise ValidationError("No image was provided.")
    # Starlette has already spooled the part; this only bounds what is held in memory
    content = await file.read(coordinator.max_bytes + 1)
    url = await anyio.to_thread.run_sync(
        coordinator.replace,
        user_id,
        content,
        file.content_type or "",
        file.filename,
    )
    audit_event("profile_image_replaced", user_id, req, outcome="success", content_type=file.content_type)
    return {"success": True, "message": "Profile image updated.", "imageUrl": url}


@router.delete("/image")
async def delete_profile_image(
    req: Request,
    user_id: str = Depends(get_authenticated_user_id),
    coordinator: ProfileImageCoordinator = Depends(get_coordinator),
):
    await anyio.to_thread.run_sync(coordinator.clear, user_id)
    audit_event("profile_image_cleared", user_id, req, outcome="success")
    return {"success": True, "message": "Profile image deleted."}
