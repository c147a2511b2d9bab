from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


class PasswordCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=60)
    value: str = Field(..., min_length=1)
    access_list: List[int] = []


class PasswordUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=60)
    value: Optional[str] = Field(None, min_length=1)
    access_list: Optional[List[int]] = None


class PasswordResponse(BaseModel):
    id: int
    name: str
    value: str
    access_list_ids: List[int] = []
    created_at: datetime

    class Config:
        from_attributes = True
