from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SyncItemIn(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1)
    type: str
    action: str = "update"
    data: Dict[str, Any] = Field(default_factory=dict)
    retries: int = Field(default=0, ge=0)
    timestamp: Optional[int] = None
    error: Optional[str] = None


class SyncRequest(BaseModel):
    items: List[SyncItemIn] = Field(default_factory=list, max_length=200)


class SyncResponse(BaseModel):
    synced: List[str]
    failed: List[SyncItemIn]
    dropped: List[SyncItemIn]
