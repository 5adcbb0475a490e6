"""Smoke check against a running Ponitor API (python -m ponitor.main)."""
import os
import sys

import requests

API_BASE = os.getenv("PONITOR_API", "http://localhost:3001/api")

print(f"Checking Ponitor API at {API_BASE}...\n")

try:
    response = requests.get(f"{API_BASE}/health", timeout=5)
except requests.ConnectionError:
    print("ERROR: API is not reachable. Start it with: python -m ponitor.main")
    sys.exit(1)

if not response.ok:
    print(f"ERROR {response.status_code}: {response.text[:100]}")
    sys.exit(1)

health = response.json()
print(f"Health: {health['message']} on {health['platform']}")

response = requests.get(f"{API_BASE}/ports", timeout=60)
if not response.ok:
    print(f"ERROR getting ports: {response.status_code}")
    sys.exit(1)

ports = response.json()["ports"]
print(f"\n{len(ports)} ports checked:")
for p in ports:
    if p["occupied"]:
        print(f"  {p['port']:>5}  {p['name']:<14} OCCUPIED  {p['process']} (PID {p['pid']})")
    elif p.get("state") == "unknown":
        print(f"  {p['port']:>5}  {p['name']:<14} UNKNOWN   {p.get('detail')}")
    else:
        print(f"  {p['port']:>5}  {p['name']:<14} free")

response = requests.post(f"{API_BASE}/kill/99999", timeout=5)
if response.status_code == 400:
    print("\nOK: out-of-range port rejected")
else:
    print(f"\nFAIL: expected 400 for port 99999, got {response.status_code}")
    sys.exit(1)

response = requests.get(f"{API_BASE}/ports/summary", timeout=60)
if response.ok:
    summary = response.json()
    print(f"Summary: {summary['occupied']} occupied, {summary['free']} free, {summary['unknown']} unknown")
else:
    print(f"ERROR getting summary: {response.status_code}")
