from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class TranscriptUpdateRequest(BaseModel):
    transcript: str

    model_config = ConfigDict(extra="forbid")


class QueryRequest(BaseModel):
    query: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SessionIdentityPublicResponse(BaseModel):
    user_id: str
    source: str


class VarianceItemPublicResponse(BaseModel):
    kpi: str
    drivers: List[str]
    comparison: str
    impact: str

    model_config = ConfigDict(extra="allow")


class SessionPublicResponse(BaseModel):
    session_id: str
    app_id: str
    transcript: str
    commentary: Optional[List[Any]] = None
    items: List[VarianceItemPublicResponse] = []
    query: str
    result: str
    error: str
    warning: str
    identity: Optional[SessionIdentityPublicResponse] = None
    identity_ready: bool
    extraction_in_progress: bool
    query_in_progress: bool
    busy: bool
    status_message: str

    model_config = ConfigDict(extra="allow")


class HealthPublicResponse(BaseModel):
    status: str
    version: str
    diagnostics: Dict[str, Any]
