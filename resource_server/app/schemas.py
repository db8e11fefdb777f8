from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    identity: str
    curve: str
    trust_url: str
    max_skew_seconds: Optional[float] = None


class DirectoryEntry(BaseModel):
    name: str
    is_dir: bool
    size: int = Field(..., ge=0, description="Size in bytes; 0 for directories")


class DirectoryListing(BaseModel):
    path: str = Field(..., description="Path relative to the served root")
    entries: list[DirectoryEntry]


class ErrorBody(BaseModel):
    error: str
