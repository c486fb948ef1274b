from __future__ import annotations

import re
from typing import Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

def client_ip_from_request(req) -> str:
    xff = req.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return req.client.host if req.client else "0.0.0.0"

def clean_str(value: Optional[str]) -> str:
    return (value or "").strip()

def normalize_email(s: Optional[str]) -> str:
    return clean_str(s).lower()

def is_valid_email(s: str) -> bool:
    return bool(EMAIL_RE.match(s))
