from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

# Fields stay optional so missing values are reported together with the
# other registration errors instead of as a body-parsing failure.
class RegisterReq(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

class ProfileUpdateReq(BaseModel):
    name: Optional[str] = None
