"""Static catalog of well-known ports checked by the dashboard."""

from typing import Dict, List, Optional
from ponitor.models import PortDescriptor

COMMON_PORTS: List[PortDescriptor] = [
    PortDescriptor(port=80, name="HTTP", category="web", description="Web server"),
    PortDescriptor(port=443, name="HTTPS", category="web", description="SSL/TLS web server"),
    PortDescriptor(port=3000, name="Node.js Dev", category="development", description="Development server"),
    PortDescriptor(port=3306, name="MySQL", category="database", description="MySQL database"),
    PortDescriptor(port=5432, name="PostgreSQL", category="database", description="PostgreSQL database"),
    PortDescriptor(port=6379, name="Redis", category="database", description="Redis cache"),
    PortDescriptor(port=27017, name="MongoDB", category="database", description="MongoDB database"),
    PortDescriptor(port=8080, name="HTTP Alt", category="web", description="Alternate web server"),
    PortDescriptor(port=9000, name="PHP-FPM", category="development", description="PHP FastCGI"),
    PortDescriptor(port=5000, name="Flask/Custom", category="development", description="Python Flask"),
    PortDescriptor(port=8000, name="Django", category="development", description="Python Django"),
    PortDescriptor(port=4200, name="Angular", category="development", description="Angular development server"),
    PortDescriptor(port=5173, name="Vite", category="development", description="Vite development server"),
    PortDescriptor(port=22, name="SSH", category="system", description="SSH remote login"),
    PortDescriptor(port=21, name="FTP", category="system", description="FTP file transfer"),
    PortDescriptor(port=3389, name="RDP", category="system", description="Windows Remote Desktop"),
]

_BY_PORT: Dict[int, PortDescriptor] = {d.port: d for d in COMMON_PORTS}


def get_descriptor(port: int) -> Optional[PortDescriptor]:
    """Look up a catalog entry by port number."""
    return _BY_PORT.get(port)
