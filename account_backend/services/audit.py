from __future__ import annotations

from typing import Any

import structlog

from account_backend.core.normalize import client_ip_from_request
from account_backend.core.settings import S
from account_backend.core.time import now_ts

log = structlog.get_logger("audit")


def audit_event(event: str, user_id: str, request=None, **fields: Any) -> None:
    if not S.audit_log_enabled:
        return
    payload = {"user_id": user_id, "ts": now_ts(), **fields}
    if request is not None:
        payload["ip"] = client_ip_from_request(request)
        payload["user_agent"] = request.headers.get("user-agent", "")[:256]
    log.info(event, **payload)
