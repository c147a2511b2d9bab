from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    leader_id: Optional[int] = None
    member_ids: List[int] = []
    description: Optional[str] = Field(None, max_length=500)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    leader_id: Optional[int] = None
    member_ids: Optional[List[int]] = None
    description: Optional[str] = Field(None, max_length=500)


class TeamResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    leader_id: Optional[int] = None
    member_ids: List[int] = []
    created_at: datetime

    class Config:
        from_attributes = True
