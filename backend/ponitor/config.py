"""
Service configuration with environment variable loading.
"""

import os
import sys
from pydantic import BaseModel, Field
from typing import Literal

BackendChoice = Literal["auto", "psutil", "command"]


class MonitorConfig(BaseModel):
    """
    Process-wide settings, resolved once at startup and injected into the
    prober and terminator.
    """

    host: str = "0.0.0.0"
    port: int = Field(3001, ge=1, le=65535)  # Listen port of the API itself

    # Lookup backend: psutil native APIs, or platform commands (lsof/netstat)
    backend: BackendChoice = "auto"

    # Upper bound for a single lookup, kill or name resolution
    lookup_timeout: float = Field(5.0, gt=0)

    # Detected once; never queried ad hoc
    platform: str = sys.platform

    class Config:
        frozen = True

    @property
    def is_windows(self) -> bool:
        return self.platform == "win32"

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - PORT: Listen port of the API (default: 3001)
        - PONITOR_HOST: Bind address (default: 0.0.0.0)
        - PONITOR_BACKEND: auto | psutil | command (default: auto)
        - PONITOR_LOOKUP_TIMEOUT: Seconds per OS lookup (default: 5.0)

        Returns:
            MonitorConfig instance with loaded values
        """
        return cls(
            host=os.getenv("PONITOR_HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3001")),
            backend=os.getenv("PONITOR_BACKEND", "auto").strip().lower(),
            lookup_timeout=float(
                os.getenv("PONITOR_LOOKUP_TIMEOUT", "5.0")
            ),
        )
