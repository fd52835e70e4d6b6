# varianceqa/core/state.py
from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict


class VarianceItem(BaseModel):
    """One variance analysis record as rendered in the result panel and export."""

    kpi: str = ""
    drivers: List[str] = []
    comparison: str = ""
    impact: str = ""

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_raw(cls, raw: Any) -> "VarianceItem":
        if not isinstance(raw, dict):
            return cls(kpi=str(raw))
        drivers = raw.get("drivers")
        if isinstance(drivers, str):
            drivers = [drivers]
        elif not isinstance(drivers, list):
            drivers = []
        return cls(
            kpi=str(raw.get("kpi") or ""),
            drivers=[str(d) for d in drivers],
            comparison=str(raw.get("comparison") or ""),
            impact=str(raw.get("impact") or ""),
        )


class SessionIdentity(BaseModel):
    user_id: str
    source: Literal["provider", "local"]

    model_config = ConfigDict(frozen=True)


class FormState(BaseModel):
    """Everything one page session shows."""

    session_id: str
    app_id: str
    transcript: str = ""
    # Unmodified parse of the last successful extraction; None until then.
    commentary: Optional[List[Any]] = None
    query: str = ""
    result: str = ""
    error: str = ""
    warning: str = ""
    identity: Optional[SessionIdentity] = None
    identity_ready: bool = False
    extraction_in_progress: bool = False
    query_in_progress: bool = False

    @property
    def busy(self) -> bool:
        return self.extraction_in_progress or self.query_in_progress
