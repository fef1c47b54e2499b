"""
Pydantic models for dashboard API requests.
"""
from pydantic import BaseModel, Field
from typing import Optional


class POPayload(BaseModel):
    header: dict
    lines: list[dict] = Field(default_factory=list)


class ImportRequest(BaseModel):
    # Either a single PO (header + lines) or a Blinkit-style poList
    header: Optional[dict] = None
    lines: Optional[list[dict]] = None
    poList: Optional[list[POPayload]] = None


class POUpdate(BaseModel):
    header: dict = Field(default_factory=dict)
    lines: Optional[list[dict]] = None      # omitted → keep stored lines


class StatusUpdate(BaseModel):
    status: str   # Open | Closed | Cancelled | Expired | Duplicate
