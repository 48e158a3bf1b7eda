"""
Pydantic schemas for audit endpoints.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class AuditStatus(str, Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CreateAuditRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
