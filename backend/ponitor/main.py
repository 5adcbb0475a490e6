"""
FastAPI backend for Ponitor.

Provides endpoints for checking the status of well-known local ports
and terminating the process that holds one of them.
"""

from dotenv import load_dotenv
from fastapi import FastAPI, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from typing import Optional
import logging

# Load environment variables from .env file
load_dotenv()

from ponitor.backends import PortBackend, create_backend
from ponitor.catalog import COMMON_PORTS, get_descriptor
from ponitor.config import MonitorConfig
from ponitor.models import (
    HealthResponse,
    PortsResponse,
    PortsSummaryResponse,
    KillResponse,
)
from ponitor.prober import probe_catalog
from ponitor.terminator import terminate_port
from ponitor.reporting import (
    CategoryFilter,
    StatusFilter,
    SortField,
    SortOrder,
    filter_reports,
    sort_reports,
    summarize_reports,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Ponitor API",
    description="Status and cleanup of well-known local ports",
    version="0.1.0"
)

# CORS middleware (dashboard is served from a different port)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Resolved once at startup
config = MonitorConfig.from_env()
port_backend = create_backend(config)

# HTTP status per unsuccessful kill reason
KILL_FAILURE_STATUS = {
    "not_found": 404,
    "kill_failed": 404,
    "lookup_failed": 503,
    "protected": 409,
}


def get_config() -> MonitorConfig:
    return config


def get_backend() -> PortBackend:
    return port_backend


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_port(raw: str) -> Optional[int]:
    """Parse a port path parameter; None when malformed or out of range."""
    raw = raw.strip()
    if not (raw.isascii() and raw.isdigit()):
        return None
    port = int(raw)
    if port < 1 or port > 65535:
        return None
    return port


def _error_response(status_code: int, message: str, error: Exception) -> JSONResponse:
    body = KillResponse(success=False, message=message, error=str(error))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.get("/api/health", response_model=HealthResponse)
async def health(cfg: MonitorConfig = Depends(get_config)):
    """Health check endpoint."""
    return HealthResponse(
        message="Ponitor API is running",
        platform=cfg.platform,
        timestamp=_timestamp()
    )


@app.get("/api/ports", response_model=PortsResponse)
async def list_ports(
    category: CategoryFilter = Query("all"),
    status: StatusFilter = Query("all"),
    sort_by: Optional[SortField] = Query(None),
    order: SortOrder = Query("asc"),
    cfg: MonitorConfig = Depends(get_config),
    backend: PortBackend = Depends(get_backend),
):
    """
    Probe every catalog port and report its status.

    Without query parameters, one entry per catalog item is returned in
    catalog order.

    Args:
        category: Only keep ports of this category
        status: Only keep occupied or free ports
        sort_by: Column to sort by (catalog order when omitted)
        order: asc or desc

    Returns:
        PortsResponse with the merged catalog and live status
    """
    try:
        reports = await probe_catalog(COMMON_PORTS, backend)
    except Exception as e:
        logger.exception("[Ponitor] Failed to probe ports")
        return _error_response(500, "Failed to get port status", e)

    reports = sort_reports(filter_reports(reports, category, status), sort_by, order)
    return PortsResponse(platform=cfg.platform, timestamp=_timestamp(), ports=reports)


@app.get("/api/ports/summary", response_model=PortsSummaryResponse)
async def ports_summary(
    cfg: MonitorConfig = Depends(get_config),
    backend: PortBackend = Depends(get_backend),
):
    """Occupied/free counts across the catalog, with a per-category breakdown."""
    try:
        reports = await probe_catalog(COMMON_PORTS, backend)
    except Exception as e:
        logger.exception("[Ponitor] Failed to summarize ports")
        return _error_response(500, "Failed to get port status", e)

    return PortsSummaryResponse(
        platform=cfg.platform,
        timestamp=_timestamp(),
        **summarize_reports(reports)
    )


@app.post("/api/kill/{port}")
async def kill_port(port: str, backend: PortBackend = Depends(get_backend)):
    """
    Terminate the process listening on a port.

    The port is validated before any OS interaction. Any port may be
    targeted, not only catalog entries.
    """
    port_number = parse_port(port)
    if port_number is None:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Invalid port number"}
        )

    descriptor = get_descriptor(port_number)
    label = f"{port_number} ({descriptor.name})" if descriptor else str(port_number)
    logger.info(f"[Kill] Request to free port {label}")

    try:
        result = await terminate_port(port_number, backend)
    except Exception as e:
        logger.exception(f"[Kill] Unexpected error on port {port_number}")
        return _error_response(500, "Failed to terminate process", e)

    body = KillResponse(success=result.success, message=result.message, port=port_number)
    status_code = 200 if result.success else KILL_FAILURE_STATUS[result.reason]
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


if __name__ == "__main__":
    import uvicorn

    logger.info("=================================")
    logger.info("Ponitor API Server")
    logger.info(f"Platform: {config.platform}")
    logger.info(f"Backend: {port_backend.name}")
    logger.info(f"Listening on {config.host}:{config.port}")
    logger.info("API endpoints:")
    logger.info("  GET  /api/health")
    logger.info("  GET  /api/ports")
    logger.info("  GET  /api/ports/summary")
    logger.info("  POST /api/kill/{port}")
    logger.info("=================================")
    uvicorn.run(app, host=config.host, port=config.port)
