"""
Pydantic models for Ponitor.

This module defines the port catalog entries, the live status derived
from a probe, and the request/response shapes of the HTTP API.
"""

from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Dict, Literal

Category = Literal["web", "database", "development", "system"]
PortState = Literal["free", "occupied", "unknown"]
KillReason = Literal["killed", "not_found", "lookup_failed", "kill_failed", "protected"]

UNKNOWN_PROCESS = "unknown"


class PortDescriptor(BaseModel):
    """A well-known port from the static catalog."""
    port: int = Field(ge=1, le=65535)
    name: str
    category: Category
    description: str

    class Config:
        frozen = True


class PortStatus(BaseModel):
    """
    Live occupancy of a port, recomputed on every probe.

    `occupied` is False for both free and unknown states; `state` tells them
    apart. pid and process are only ever set for an occupied port.
    """
    occupied: bool = False
    pid: Optional[int] = None
    process: Optional[str] = None
    state: PortState = "free"
    detail: Optional[str] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "PortStatus":
        if self.occupied:
            if self.pid is None:
                raise ValueError("occupied port must carry a pid")
            if self.state != "occupied":
                raise ValueError("occupied port must have state 'occupied'")
        else:
            if self.pid is not None or self.process is not None:
                raise ValueError("unoccupied port cannot carry pid or process")
            if self.state == "occupied":
                raise ValueError("state 'occupied' requires occupied=True")
        return self

    @classmethod
    def free(cls) -> "PortStatus":
        return cls()

    @classmethod
    def held_by(cls, pid: int, process: Optional[str] = None) -> "PortStatus":
        return cls(
            occupied=True,
            pid=pid,
            process=process or UNKNOWN_PROCESS,
            state="occupied",
        )

    @classmethod
    def unknown(cls, detail: str) -> "PortStatus":
        return cls(state="unknown", detail=detail)


class PortReport(BaseModel):
    """A catalog entry merged with its live status (one row of /api/ports)."""
    port: int
    name: str
    category: Category
    description: str
    occupied: bool
    pid: Optional[int] = None
    process: Optional[str] = None
    state: PortState = "free"
    detail: Optional[str] = None

    @classmethod
    def merge(cls, descriptor: PortDescriptor, status: PortStatus) -> "PortReport":
        return cls(**descriptor.model_dump(), **status.model_dump())


class KillResult(BaseModel):
    """Outcome of a terminate request for a single port."""
    success: bool
    message: str
    pid: Optional[int] = None
    reason: KillReason


class HealthResponse(BaseModel):
    success: bool = True
    message: str
    platform: str
    timestamp: str


class PortsResponse(BaseModel):
    success: bool = True
    platform: str
    timestamp: str
    ports: List[PortReport]


class PortsSummaryResponse(BaseModel):
    """Counts shown on the dashboard header."""
    success: bool = True
    platform: str
    timestamp: str
    total: int
    occupied: int
    free: int
    unknown: int
    by_category: Dict[str, int]


class KillResponse(BaseModel):
    success: bool
    message: str
    port: Optional[int] = None
    error: Optional[str] = None
