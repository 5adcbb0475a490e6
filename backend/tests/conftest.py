"""Shared fixtures: mocked lookup backend, API client, real listener processes."""

import subprocess
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from ponitor.backends import PortBackend
from ponitor.main import app, get_backend

LISTENER_SCRIPT = """
import socket, sys, time
s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
s.bind(("127.0.0.1", int(sys.argv[1])))
s.listen()
print(s.getsockname()[1], flush=True)
time.sleep(120)
"""


@pytest.fixture
def mock_backend():
    """Backend double: nothing listens anywhere unless a test says so."""
    backend = MagicMock(spec=PortBackend)
    backend.name = "mock"
    backend.find_listener_pids = AsyncMock(return_value=[])
    backend.process_name = AsyncMock(return_value="node")
    backend.kill = AsyncMock(return_value=None)
    backend.snapshot = AsyncMock(return_value=backend)
    return backend


@pytest.fixture
def client(mock_backend):
    """API client wired to the mocked backend."""
    app.dependency_overrides[get_backend] = lambda: mock_backend
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def spawn_listener():
    """
    Start child processes that listen on TCP ports.

    Call with a port number, or 0 for an ephemeral one. Returns
    (process, bound_port).
    """
    procs = []

    def _spawn(port: int = 0):
        proc = subprocess.Popen(
            [sys.executable, "-c", LISTENER_SCRIPT, str(port)],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        procs.append(proc)
        line = proc.stdout.readline()
        if not line.strip():
            proc.kill()
            pytest.skip(f"listener could not bind port {port}: {proc.stderr.read().strip()}")
        return proc, int(line)

    yield _spawn

    for proc in procs:
        if proc.poll() is None:
            proc.kill()
        proc.wait(timeout=5)
