"""
Port status probing.

probe_port never raises: every outcome, including tooling failure,
resolves to a concrete PortStatus.
"""

import asyncio
import logging
from typing import List, Sequence

from ponitor.backends import PortBackend, PonitorError, LookupTimeoutError
from ponitor.models import PortDescriptor, PortReport, PortStatus

logger = logging.getLogger(__name__)


async def probe_port(port: int, backend: PortBackend) -> PortStatus:
    """
    Determine whether `port` is held by a listening process.

    Args:
        port: Port number, already validated by the caller
        backend: Lookup backend selected at startup

    Returns:
        PortStatus: free, occupied (with pid and name) or unknown
    """
    try:
        pids = await backend.find_listener_pids(port)
    except LookupTimeoutError as e:
        logger.warning(f"[Probe] Port {port}: {e}")
        return PortStatus.unknown(str(e))
    except PonitorError as e:
        logger.warning(f"[Probe] Port {port}: lookup unavailable: {e}")
        return PortStatus.unknown(str(e))
    except Exception as e:
        logger.error(f"[Probe] Port {port}: lookup error: {type(e).__name__}: {e}")
        return PortStatus.unknown(f"{type(e).__name__}: {e}")

    if not pids:
        return PortStatus.free()

    # Several sockets may match; the first one reported by the OS wins
    pid = pids[0]
    try:
        name = await backend.process_name(pid)
    except Exception as e:
        logger.info(f"[Probe] Port {port}: could not resolve name of pid {pid}: {e}")
        name = None

    logger.debug(f"[Probe] Port {port} held by {name or '?'} (pid {pid})")
    return PortStatus.held_by(pid, name)


async def probe_catalog(
    catalog: Sequence[PortDescriptor],
    backend: PortBackend
) -> List[PortReport]:
    """
    Probe every catalog entry concurrently; results keep catalog order.

    The backend takes one snapshot of the socket table per call (where it
    supports that), so each port is resolved from the same fresh view.
    """
    try:
        view = await backend.snapshot()
    except PonitorError as e:
        logger.warning(f"[Ports] Socket table unavailable: {e}")
        return [PortReport.merge(d, PortStatus.unknown(str(e))) for d in catalog]

    statuses = await asyncio.gather(*(probe_port(d.port, view) for d in catalog))
    return [PortReport.merge(d, s) for d, s in zip(catalog, statuses)]
