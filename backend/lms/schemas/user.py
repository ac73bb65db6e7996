"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserCreate(BaseModel):
    name: str
    email: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    name: str
    email: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
