"""
OS lookup backends for listening sockets and their owning processes.

One interface, three implementations chosen once at startup:
- PsutilBackend: native OS APIs through psutil (preferred)
- LsofBackend: lsof / ps / kill on macOS and Linux
- NetstatBackend: netstat / tasklist / taskkill on Windows

Backends raise PonitorError subclasses for tooling problems. Absence of
a listener is never an error: find_listener_pids just returns [].
"""

import asyncio
import csv
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

import psutil

from ponitor.config import MonitorConfig

logger = logging.getLogger(__name__)


class PonitorError(Exception):
    """Base class for lookup and kill failures."""


class LookupToolError(PonitorError):
    """The OS lookup facility is missing or unusable."""


class LookupTimeoutError(PonitorError):
    """An OS lookup did not finish in time."""


class KillError(PonitorError):
    """The kill request was rejected by the OS."""


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


async def run_command(args: List[str], timeout: float) -> CommandResult:
    """Run a command without a shell, bounded by `timeout` seconds."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise LookupToolError(f"'{args[0]}' is not available on this system") from e
    except PermissionError as e:
        raise LookupToolError(f"'{args[0]}' cannot be executed: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise LookupTimeoutError(f"'{' '.join(args)}' timed out after {timeout}s")

    return CommandResult(
        returncode=proc.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


def parse_lsof_pids(output: str) -> List[int]:
    """Parse `lsof -t` output (one pid per line), keeping first-seen order."""
    pids: List[int] = []
    for line in output.splitlines():
        line = line.strip()
        if line.isdigit() and int(line) not in pids:
            pids.append(int(line))
    return pids


def parse_netstat_pids(output: str, port: int) -> List[int]:
    """
    Parse `netstat -ano` output for TCP sockets listening on `port`.

    A row is treated as listening when its state column reads LISTENING or
    its foreign address is the wildcard, so localized state names still match.
    """
    pids: List[int] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 5 or parts[0].upper() != "TCP":
            continue
        local, foreign, state, pid = parts[1], parts[2], parts[3], parts[-1]
        _, _, local_port = local.rpartition(":")
        if local_port != str(port):
            continue
        if state.upper() != "LISTENING" and foreign not in ("0.0.0.0:0", "[::]:0", "*:*"):
            continue
        if pid.isdigit() and int(pid) not in pids:
            pids.append(int(pid))
    return pids


def parse_tasklist_name(output: str) -> Optional[str]:
    """Parse `tasklist /FO CSV /NH` output; the image name is the first field."""
    text = output.strip()
    if not text or text.startswith("INFO:"):
        return None
    row = next(csv.reader(text.splitlines()), None)
    if not row or not row[0].strip():
        return None
    return row[0].strip()


class PortBackend(ABC):
    """Finds the process listening on a TCP port and can kill it."""

    name = "base"

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    @abstractmethod
    async def find_listener_pids(self, port: int) -> List[int]:
        """Pids listening on `port`, in OS order. Empty when none."""

    @abstractmethod
    async def process_name(self, pid: int) -> Optional[str]:
        """Human-readable process name, or None when it cannot be resolved."""

    @abstractmethod
    async def kill(self, pid: int) -> None:
        """Forcefully terminate `pid`. Raises KillError on refusal."""

    async def snapshot(self) -> "PortBackend":
        """
        Backend to use for probing many ports in one request. Command
        backends look each port up on demand and return themselves.
        """
        return self


class LsofBackend(PortBackend):
    """macOS/Linux lookup through lsof and ps."""

    name = "lsof"

    async def find_listener_pids(self, port: int) -> List[int]:
        result = await run_command(
            ["lsof", "-nP", f"-iTCP:{port}", "-sTCP:LISTEN", "-t"], self.timeout
        )
        # lsof exits 1 when nothing matches
        if result.returncode != 0:
            return []
        return parse_lsof_pids(result.stdout)

    async def process_name(self, pid: int) -> Optional[str]:
        result = await run_command(["ps", "-p", str(pid), "-o", "comm="], self.timeout)
        name = result.stdout.strip()
        if result.returncode != 0 or not name:
            return None
        return name

    async def kill(self, pid: int) -> None:
        result = await run_command(["kill", "-9", str(pid)], self.timeout)
        if result.returncode != 0:
            raise KillError(
                result.stderr.strip() or f"kill exited with status {result.returncode}"
            )


class NetstatBackend(PortBackend):
    """Windows lookup through netstat and tasklist."""

    name = "netstat"

    async def find_listener_pids(self, port: int) -> List[int]:
        result = await run_command(["netstat", "-ano", "-p", "TCP"], self.timeout)
        if result.returncode != 0:
            return []
        pids = parse_netstat_pids(result.stdout, port)
        if not pids:
            # IPv6-only listeners are reported under TCPv6
            v6 = await run_command(["netstat", "-ano", "-p", "TCPv6"], self.timeout)
            if v6.returncode == 0:
                pids = parse_netstat_pids(v6.stdout, port)
        return pids

    async def process_name(self, pid: int) -> Optional[str]:
        result = await run_command(
            ["tasklist", "/FI", f"PID eq {pid}", "/FO", "CSV", "/NH"], self.timeout
        )
        if result.returncode != 0:
            return None
        return parse_tasklist_name(result.stdout)

    async def kill(self, pid: int) -> None:
        result = await run_command(["taskkill", "/PID", str(pid), "/F"], self.timeout)
        if result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip()
            raise KillError(message or f"taskkill exited with status {result.returncode}")


class PsutilBackend(PortBackend):
    """
    Native lookup through psutil.

    Socket enumeration may need elevated rights (macOS without root); the
    fallback backend is consulted when the OS refuses.
    """

    name = "psutil"

    def __init__(self, timeout: float = 5.0, fallback: Optional[PortBackend] = None):
        super().__init__(timeout)
        self.fallback = fallback

    async def _bounded(self, func, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), self.timeout)
        except asyncio.TimeoutError:
            raise LookupTimeoutError(f"psutil {func.__name__} timed out after {self.timeout}s")

    @staticmethod
    def _scan_table() -> Tuple[Dict[int, List[int]], Set[int]]:
        """Map each listening port to its pids; also return ports with hidden owners."""
        table: Dict[int, List[int]] = {}
        hidden: Set[int] = set()
        for conn in psutil.net_connections(kind="tcp"):
            if conn.status != psutil.CONN_LISTEN or not conn.laddr:
                continue
            port = conn.laddr.port
            if conn.pid is None:
                hidden.add(port)
                continue
            pids = table.setdefault(port, [])
            if conn.pid not in pids:
                pids.append(conn.pid)
        return table, hidden

    async def _resolve(self, port: int, table: Dict[int, List[int]], hidden: Set[int]) -> List[int]:
        pids = list(table.get(port, []))
        if not pids and port in hidden:
            # Listener owned by another user; its pid is not visible to us
            if self.fallback is not None:
                pids = await self.fallback.find_listener_pids(port)
            if not pids:
                raise LookupToolError(
                    f"port {port} is held by a process this user cannot inspect"
                )
        return pids

    async def _scan_or_fallback(self) -> Optional[Tuple[Dict[int, List[int]], Set[int]]]:
        """One socket table scan; None when the OS refuses and a fallback exists."""
        try:
            return await self._bounded(self._scan_table)
        except psutil.AccessDenied:
            if self.fallback is None:
                raise LookupToolError("listing sockets requires elevated privileges")
            logger.debug(f"[psutil] Access denied listing sockets, using {self.fallback.name}")
            return None

    async def find_listener_pids(self, port: int) -> List[int]:
        scan = await self._scan_or_fallback()
        if scan is None:
            return await self.fallback.find_listener_pids(port)
        return await self._resolve(port, *scan)

    async def snapshot(self) -> PortBackend:
        scan = await self._scan_or_fallback()
        if scan is None:
            return await self.fallback.snapshot()
        return PsutilSnapshot(self, *scan)

    @staticmethod
    def _name(pid: int) -> Optional[str]:
        try:
            return psutil.Process(pid).name() or None
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return None

    async def process_name(self, pid: int) -> Optional[str]:
        return await self._bounded(self._name, pid)

    @staticmethod
    def _kill(pid: int) -> None:
        try:
            psutil.Process(pid).kill()
        except psutil.NoSuchProcess:
            raise KillError(f"process {pid} no longer exists")
        except psutil.AccessDenied:
            raise KillError(f"permission denied killing process {pid}")

    async def kill(self, pid: int) -> None:
        await self._bounded(self._kill, pid)


class PsutilSnapshot(PortBackend):
    """
    Listener lookups answered from one socket table scan.

    Built per status request so that probing the whole catalog costs a
    single `net_connections` call. Names and kills go to the live backend.
    """

    name = "psutil"

    def __init__(self, backend: PsutilBackend, table: Dict[int, List[int]], hidden: Set[int]):
        super().__init__(backend.timeout)
        self.backend = backend
        self.table = table
        self.hidden = hidden

    async def find_listener_pids(self, port: int) -> List[int]:
        return await self.backend._resolve(port, self.table, self.hidden)

    async def process_name(self, pid: int) -> Optional[str]:
        return await self.backend.process_name(pid)

    async def kill(self, pid: int) -> None:
        await self.backend.kill(pid)


def command_backend(config: MonitorConfig) -> PortBackend:
    """Platform command backend for the configured platform."""
    if config.is_windows:
        return NetstatBackend(timeout=config.lookup_timeout)
    return LsofBackend(timeout=config.lookup_timeout)


def create_backend(config: MonitorConfig) -> PortBackend:
    """Select the lookup backend once, from configuration."""
    if config.backend == "command":
        backend = command_backend(config)
    elif config.backend == "psutil":
        backend = PsutilBackend(timeout=config.lookup_timeout)
    else:
        backend = PsutilBackend(timeout=config.lookup_timeout, fallback=command_backend(config))
    logger.info(f"[Ponitor] Using {backend.name} backend on {config.platform} (pid {os.getpid()})")
    return backend
