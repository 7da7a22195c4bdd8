"""
Caller identity decoded from the bearer token issued by the auth service.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class AuthPrincipal(BaseModel):
    user_id: str
    phone: Optional[str] = None
