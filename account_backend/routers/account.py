from __future__ import annotations

import anyio
from fastapi import APIRouter, Depends, Request

from account_backend.auth.deps import get_authenticated_user_id
from account_backend.models import RegisterReq
from account_backend.services.account import delete_account, register
from account_backend.services.audit import audit_event

router = APIRouter(tags=["account"])


@router.post("/register", status_code=201)
async def register_user(req: Request, body: RegisterReq):
    user = await anyio.to_thread.run_sync(register, body.name, body.email, body.password)
    audit_event("user_registered", user["id"], req, outcome="success")
    return {"success": True, "message": "Registration complete.", "user": user}


@router.delete("/account")
async def delete_user_account(req: Request, user_id: str = Depends(get_authenticated_user_id)):
    await anyio.to_thread.run_sync(delete_account, user_id)
    audit_event("account_deleted", user_id, req, outcome="success")
    return {"success": True, "message": "Account deleted."}
