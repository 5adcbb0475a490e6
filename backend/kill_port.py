"""Kill the process listening on a port.

Usage:
    python kill_port.py --port 8000
    python kill_port.py --port 8000 --yes
"""
import argparse
import asyncio
import sys

from dotenv import load_dotenv

from ponitor.backends import create_backend
from ponitor.catalog import get_descriptor
from ponitor.config import MonitorConfig
from ponitor.prober import probe_port
from ponitor.terminator import terminate_port


async def free_port(port: int, assume_yes: bool) -> int:
    config = MonitorConfig.from_env()
    backend = create_backend(config)

    descriptor = get_descriptor(port)
    label = f"{port} ({descriptor.name})" if descriptor else str(port)

    status = await probe_port(port, backend)
    if status.state == "unknown":
        print(f"Could not check port {label}: {status.detail}")
        return 1
    if not status.occupied:
        print(f"Port {label} is already free.")
        return 0

    print(f"Found {status.process} (PID {status.pid}) on port {label}")
    if not assume_yes:
        choice = input("Terminate it? (y/n): ").strip().lower()
        if choice != "y":
            print("Aborted. No action was taken.")
            return 1

    result = await terminate_port(port, backend)
    print(result.message)
    return 0 if result.success else 1


def main():
    parser = argparse.ArgumentParser(description="Find and kill the process listening on a port.")
    parser.add_argument("-p", "--port", type=int, default=8000, help="Port to free (default: 8000)")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    args = parser.parse_args()

    if not 1 <= args.port <= 65535:
        print("Port must be between 1 and 65535")
        sys.exit(1)

    load_dotenv()
    sys.exit(asyncio.run(free_port(args.port, args.yes)))


if __name__ == "__main__":
    main()
