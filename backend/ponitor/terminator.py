"""
Process termination by port.

Lookup and kill are two separate OS calls. The process holding the port
may change between them; no re-verification is done.
"""

import logging
import os

from ponitor.backends import PortBackend, PonitorError
from ponitor.models import KillResult

logger = logging.getLogger(__name__)


async def terminate_port(port: int, backend: PortBackend) -> KillResult:
    """
    Forcefully kill the process listening on `port`.

    Args:
        port: Port number, already validated by the caller
        backend: Lookup backend selected at startup

    Returns:
        KillResult describing the outcome; failures are values, not exceptions
    """
    try:
        pids = await backend.find_listener_pids(port)
    except PonitorError as e:
        logger.warning(f"[Kill] Port {port}: lookup failed: {e}")
        return KillResult(
            success=False,
            message=f"Could not look up the process on port {port}: {e}",
            reason="lookup_failed"
        )

    if not pids:
        return KillResult(
            success=False,
            message=f"No process found listening on port {port}",
            reason="not_found"
        )

    # Reloaders and worker supervisors share the listening socket with us
    own = {os.getpid(), os.getppid()}
    protected = [p for p in pids if p in own]
    if protected:
        logger.warning(f"[Kill] Refusing to kill own process {protected[0]} on port {port}")
        return KillResult(
            success=False,
            message=f"Port {port} is held by the monitor itself",
            pid=protected[0],
            reason="protected"
        )

    pid = pids[0]

    try:
        await backend.kill(pid)
    except PonitorError as e:
        logger.warning(f"[Kill] Port {port}: killing pid {pid} failed: {e}")
        return KillResult(
            success=False,
            message=f"Failed to terminate process: {e}",
            pid=pid,
            reason="kill_failed"
        )

    logger.info(f"[Kill] Terminated pid {pid} on port {port}")
    return KillResult(
        success=True,
        message=f"Terminated process {pid} on port {port}",
        pid=pid,
        reason="killed"
    )
