from __future__ import annotations
from typing import Literal, Optional, Dict, Any
from pydantic import BaseModel, Field

class QueryRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=4000, description="Farmer's question")
    user_id: Optional[str] = None
    room_id: Optional[str] = Field(default=None, description="Live room to push the answer to")
    language: Optional[str] = Field(default=None, description="Target language code, e.g. 'hi' or 'ml'")

class QueryCreatedResponse(BaseModel):
    id: str
    status: Literal["pending", "answered", "error"] = "pending"

class QueryStatusResponse(BaseModel):
    id: str
    status: Literal["pending", "answered", "error"]
    response: Optional[str] = None
    created_at: float
    updated_at: float
    metadata: Dict[str, Any] = {}
